"""Tests for the image library: single uploads, gated batch uploads and listing."""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import TestingSessionLocal
from picvault.models.image_library import ImageLibrary, LibraryImage
from picvault.models.user import User
from picvault.services.images import append_image_urls, get_image_urls
from picvault.services.object_store import build_object_key, public_url_for
from picvault.services.subscription_window import format_expiry

PNG = b"\x89PNG\r\n\x1a\n" + b"0" * 64


def png(name="photo.png", data=PNG, mime="image/png"):
    return ("UploadFiles", (name, data, mime))


def subscribe(db, user_id, expiry):
    user = db.query(User).filter(User.id == user_id).first()
    user.expiry_of_subscription = expiry
    db.commit()


class TestSingleUpload:
    def test_fresh_user_has_no_library(self, client, account, headers):
        response = client.get(f"/api/users/images/{account['userId']}", headers=headers)
        assert response.status_code == 404
        assert response.json()["message"] == "Image Library not found in the db, try again later..."

    def test_upload_stores_object_and_returns_metadata(self, client, account, headers, s3):
        user_id = account["userId"]
        response = client.post(f"/api/users/image-upload/{user_id}", headers=headers, files=[png()])
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Uploaded!"
        assert body["type"] == "image/png"
        assert body["size"] == len(PNG)
        assert body["name"].startswith(f"{user_id}/")
        assert body["name"].endswith("-photo.png")
        assert body["publicUrl"] == f"https://img.example.com/{user_id}/{body['name'].split('/')[-1]}"

        (bucket, key), stored = next(iter(s3.objects.items()))
        assert bucket == "test-bucket"
        assert key == body["name"]
        assert stored["content_type"] == "image/png"

    def test_sequential_uploads_append_in_order(self, client, account, headers):
        user_id = account["userId"]
        urls = []
        for i in range(3):
            response = client.post(
                f"/api/users/image-upload/{user_id}",
                headers=headers,
                files=[png(name=f"img{i}.jpg", mime="image/jpeg")],
            )
            assert response.status_code == 200
            urls.append(response.json()["publicUrl"])

        response = client.get(f"/api/users/images/{user_id}", headers=headers)
        assert response.status_code == 200
        assert response.json() == {"imageUrls": urls}
        assert response.headers["Cache-Control"] == "no-cache"

    def test_unknown_user_is_404(self, client, headers, s3):
        response = client.post("/api/users/image-upload/nobody", headers=headers, files=[png()])
        assert response.status_code == 404
        assert response.json()["message"] == "User not found in the db, try again later..."
        assert s3.objects == {}

    def test_rejects_unsupported_mime_type(self, client, account, headers, s3):
        response = client.post(
            f"/api/users/image-upload/{account['userId']}",
            headers=headers,
            files=[png(name="anim.gif", mime="image/gif")],
        )
        assert response.status_code == 422
        assert response.json()["message"] == "Invalid mime type!"
        assert s3.objects == {}

    def test_rejects_oversize_file(self, client, account, headers, s3):
        response = client.post(
            f"/api/users/image-upload/{account['userId']}",
            headers=headers,
            files=[png(data=b"0" * 2048)],
        )
        assert response.status_code == 422
        assert s3.objects == {}

    def test_object_store_failure_leaves_library_untouched(self, client, account, headers, s3, db):
        s3.fail = True
        response = client.post(f"/api/users/image-upload/{account['userId']}", headers=headers, files=[png()])
        assert response.status_code == 500
        assert response.json()["message"] == "Image upload failed, try again later..."
        assert db.query(LibraryImage).count() == 0


class TestMultipleUpload:
    def test_requires_subscription(self, client, account, headers, s3):
        response = client.post(
            f"/api/users/image-upload-multiple/{account['userId']}",
            headers=headers,
            files=[png("a.png"), png("b.png")],
        )
        assert response.status_code == 404
        assert response.json()["message"] == "User is not subscribed for Pro plan."
        assert s3.objects == {}

    def test_subscription_checked_before_file_count(self, client, account, headers, s3):
        response = client.post(
            f"/api/users/image-upload-multiple/{account['userId']}",
            headers=headers,
            files=[png(f"{i}.png") for i in range(6)],
        )
        assert response.status_code == 404
        assert response.json()["message"] == "User is not subscribed for Pro plan."
        assert s3.objects == {}

    def test_expired_subscription_is_404(self, client, account, headers, db, s3):
        subscribe(db, account["userId"], format_expiry(datetime.now(timezone.utc) - timedelta(minutes=1)))
        response = client.post(
            f"/api/users/image-upload-multiple/{account['userId']}",
            headers=headers,
            files=[png("a.png")],
        )
        assert response.status_code == 404
        assert response.json()["message"] == "User subscription expired, please renew your subscription."
        assert s3.objects == {}

    def test_active_subscription_appends_batch(self, client, account, headers, db, s3):
        user_id = account["userId"]
        subscribe(db, user_id, format_expiry(datetime.now(timezone.utc) + timedelta(days=1)))
        client.post(f"/api/users/image-upload/{user_id}", headers=headers, files=[png("first.png")])

        response = client.post(
            f"/api/users/image-upload-multiple/{user_id}",
            headers=headers,
            files=[png("a.png"), png("b.jpeg", mime="image/jpeg"), png("c.jpg", mime="image/jpg")],
        )
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Uploaded!"
        assert len(body["publicUrls"]) == 3
        assert [f["type"] for f in body["files"]] == ["image/png", "image/jpeg", "image/jpg"]
        assert len(s3.objects) == 4

        listing = client.get(f"/api/users/images/{user_id}", headers=headers).json()["imageUrls"]
        assert len(listing) == 4
        assert listing[1:] == body["publicUrls"]

    def test_more_than_five_files_is_422(self, client, account, headers, db, s3):
        subscribe(db, account["userId"], format_expiry(datetime.now(timezone.utc) + timedelta(days=1)))
        response = client.post(
            f"/api/users/image-upload-multiple/{account['userId']}",
            headers=headers,
            files=[png(f"{i}.png") for i in range(6)],
        )
        assert response.status_code == 422
        assert s3.objects == {}

    def test_one_bad_file_rejects_whole_batch(self, client, account, headers, db, s3):
        subscribe(db, account["userId"], format_expiry(datetime.now(timezone.utc) + timedelta(days=1)))
        response = client.post(
            f"/api/users/image-upload-multiple/{account['userId']}",
            headers=headers,
            files=[png("ok.png"), png("bad.bmp", mime="image/bmp")],
        )
        assert response.status_code == 422
        assert s3.objects == {}


class TestLibraryPersistence:
    def test_library_created_lazily(self, client, account, db):
        user_id = account["userId"]
        assert get_image_urls(db, user_id) is None
        append_image_urls(db, user_id, ["u1"])
        assert db.query(ImageLibrary).count() == 1
        append_image_urls(db, user_id, ["u2", "u3"])
        assert db.query(ImageLibrary).count() == 1
        assert get_image_urls(db, user_id) == ["u1", "u2", "u3"]

    def test_interleaved_appends_do_not_lose_urls(self, client, account):
        """Both writers read the library before either saves; neither write is lost."""
        user_id = account["userId"]
        first = TestingSessionLocal()
        second = TestingSessionLocal()
        try:
            append_image_urls(first, user_id, ["seed"])
            seen_by_first = get_image_urls(first, user_id)
            seen_by_second = get_image_urls(second, user_id)
            assert seen_by_first == seen_by_second == ["seed"]

            append_image_urls(first, user_id, ["from-first"])
            append_image_urls(second, user_id, ["from-second"])
        finally:
            first.close()
            second.close()

        check = TestingSessionLocal()
        try:
            assert get_image_urls(check, user_id) == ["seed", "from-first", "from-second"]
        finally:
            check.close()

    def test_failed_first_append_leaves_no_library(self, client, account, db):
        user_id = account["userId"]
        with pytest.raises(IntegrityError):
            append_image_urls(db, user_id, [None])
        assert get_image_urls(db, user_id) is None
        assert db.query(ImageLibrary).count() == 0

        append_image_urls(db, user_id, ["after"])
        assert get_image_urls(db, user_id) == ["after"]

    def test_re_uploading_same_url_appends_again(self, client, account, db):
        append_image_urls(db, account["userId"], ["same"])
        append_image_urls(db, account["userId"], ["same"])
        assert get_image_urls(db, account["userId"]) == ["same", "same"]


class TestObjectKeys:
    def test_key_layout(self):
        now = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert build_object_key("u1", "cat.png", now) == "u1/20260102030405-cat.png"

    def test_public_url_uses_last_location_segment(self):
        location = "https://r2.example.com/bucket/u1/20260102030405-cat.png"
        assert public_url_for("https://img.example.com/", "u1", location) == (
            "https://img.example.com/u1/20260102030405-cat.png"
        )
