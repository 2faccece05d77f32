"""
Tests for profile picture upload and removal on top of a mocked MinIO client.
"""

from cemse_backend.model.auth import Profile
from cemse_backend.storage_config import MAX_PROFILE_PICTURE_SIZE, PROFILE_PICTURE_BUCKET

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class TestUploadProfilePicture:

    def test_upload_updates_profile(self, signed_in, minio_client, db):
        client, profile = signed_in()

        response = client.post("/api/files/upload", files={"file": ("me.PNG", PNG_BYTES, "image/png")})

        assert response.status_code == 200
        body = response.json()
        object_key = body["file"]["name"]
        assert object_key.startswith(f"{profile.auth_user_id}_")
        assert object_key.endswith(".png")
        assert body["file"]["url"] == f"http://storage.test/{PROFILE_PICTURE_BUCKET}/{object_key}"
        assert body["profile"]["pfp_url"] == body["file"]["url"]

        minio_client.put_object.assert_called_once()
        kwargs = minio_client.put_object.call_args.kwargs
        assert kwargs["bucket_name"] == PROFILE_PICTURE_BUCKET
        assert kwargs["length"] == len(PNG_BYTES)

        db.expire_all()
        assert db.query(Profile).filter(Profile.id == profile.id).one().pfp_url == body["file"]["url"]

    def test_rejects_disallowed_type(self, signed_in, minio_client):
        client, _ = signed_in()

        response = client.post("/api/files/upload", files={"file": ("doc.pdf", b"%PDF-1.4", "application/pdf")})

        assert response.status_code == 400
        assert "not allowed" in response.json()["error"]
        minio_client.put_object.assert_not_called()

    def test_rejects_oversized_file(self, signed_in, minio_client):
        client, _ = signed_in()
        oversized = b"\x00" * (MAX_PROFILE_PICTURE_SIZE + 1)

        response = client.post("/api/files/upload", files={"file": ("big.png", oversized, "image/png")})

        assert response.status_code == 400
        assert "exceeds" in response.json()["error"]
        minio_client.put_object.assert_not_called()

    def test_rejects_disguised_executable(self, signed_in, minio_client):
        client, _ = signed_in()

        response = client.post("/api/files/upload", files={"file": ("cat.png", b"MZ\x90\x00" + b"\x00" * 32, "image/png")})

        assert response.status_code == 400
        minio_client.put_object.assert_not_called()

    def test_requires_session(self, client):
        response = client.post("/api/files/upload", files={"file": ("me.png", PNG_BYTES, "image/png")})
        assert response.status_code == 401


class TestDeleteProfilePicture:

    def test_delete_removes_object(self, signed_in, minio_client):
        client, _ = signed_in()
        uploaded = client.post("/api/files/upload", files={"file": ("me.png", PNG_BYTES, "image/png")}).json()

        response = client.delete("/api/files/delete")

        assert response.status_code == 200
        assert response.json()["profile"]["pfp_url"] is None
        minio_client.remove_object.assert_called_once_with(PROFILE_PICTURE_BUCKET, uploaded["file"]["name"])

    def test_external_picture_only_clears_reference(self, signed_in, minio_client):
        client, _ = signed_in()
        client.patch("/api/profile", json={"pfp_url": "https://cdn.example.com/me.png"})

        response = client.delete("/api/files/delete")

        assert response.status_code == 200
        minio_client.remove_object.assert_not_called()

    def test_nothing_to_delete(self, signed_in):
        client, _ = signed_in()

        response = client.delete("/api/files/delete")

        assert response.status_code == 404
        assert response.json()["error"] == "No profile picture to delete"
