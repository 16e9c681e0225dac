"""
Tests for gallery endpoints, image uploads and thumbnail handling.
"""
import io
from pathlib import Path

import pytest
from sqlalchemy.exc import OperationalError

from app.core.config import settings
from app.main import app
from app.models import ApprovalStatus, Gallery, GalleryImage, get_db
from tests.conftest import make_image_bytes

GALLERY_URL = "/api/v1/gallery"


@pytest.fixture
def make_gallery(db_session):
    def factory(author, status=ApprovalStatus.PENDING, title="Open house"):
        gallery = Gallery(title=title, status=status, created_by=author.id)
        db_session.add(gallery)
        db_session.commit()
        db_session.refresh(gallery)
        return gallery

    return factory


def upload(client, headers, gallery_id, name="photo.jpg", content_type="image/jpeg"):
    fmt = "PNG" if content_type == "image/png" else "JPEG"
    return client.post(
        f"{GALLERY_URL}/upload-image",
        data={"galleryId": str(gallery_id)},
        files={"image": (name, io.BytesIO(make_image_bytes(fmt)), content_type)},
        headers=headers,
    )


class TestGalleryCrud:
    def test_create_gallery(self, client, admin_headers):
        response = client.post(GALLERY_URL, json={"title": "Workshop day"}, headers=admin_headers)

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["status"] == "PENDING"
        assert data["images"] == []
        assert data["thumbnailUrl"] is None

    def test_create_short_title(self, client, admin_headers):
        response = client.post(GALLERY_URL, json={"title": "ab"}, headers=admin_headers)

        assert response.status_code == 422

    def test_admin_cannot_edit_approved_gallery(
        self, client, admin_headers, admin_user, make_gallery
    ):
        gallery = make_gallery(admin_user, ApprovalStatus.APPROVED)

        response = client.put(
            f"{GALLERY_URL}/{gallery.id}", json={"title": "Renamed"}, headers=admin_headers
        )

        assert response.status_code == 403
        assert response.json()["message"] == (
            "Access denied. Cannot modify an approved gallery or another admin's gallery."
        )

    def test_admin_cannot_edit_others_gallery(
        self, client, other_admin_headers, admin_user, make_gallery
    ):
        gallery = make_gallery(admin_user)

        response = client.put(
            f"{GALLERY_URL}/{gallery.id}", json={"title": "Renamed"}, headers=other_admin_headers
        )

        assert response.status_code == 403

    def test_update_rejected_gallery_resubmits(
        self, client, admin_headers, admin_user, make_gallery
    ):
        gallery = make_gallery(admin_user, ApprovalStatus.REJECTED)

        response = client.put(
            f"{GALLERY_URL}/{gallery.id}", json={"title": "Renamed"}, headers=admin_headers
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Gallery updated successfully and status changed to PENDING"
        assert body["data"]["gallery"]["status"] == "PENDING"
        assert body["data"]["statusChanged"] is True

    def test_superadmin_edits_approved_gallery(
        self, client, superadmin_headers, admin_user, make_gallery
    ):
        gallery = make_gallery(admin_user, ApprovalStatus.APPROVED)

        response = client.put(
            f"{GALLERY_URL}/{gallery.id}", json={"title": "Renamed"}, headers=superadmin_headers
        )

        assert response.status_code == 200
        assert response.json()["data"]["statusChanged"] is False

    def test_status_change(self, client, superadmin_headers, admin_user, make_gallery):
        gallery = make_gallery(admin_user)

        response = client.patch(
            f"{GALLERY_URL}/{gallery.id}/status",
            json={"status": "APPROVED"},
            headers=superadmin_headers,
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Gallery status changed to APPROVED successfully"

    def test_missing_gallery(self, client, admin_headers):
        response = client.get(f"{GALLERY_URL}/999", headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Gallery not found"


class TestGalleryVisibility:
    def test_end_user_sees_approved_only(
        self, client, auth_headers, admin_user, make_gallery
    ):
        approved = make_gallery(admin_user, ApprovalStatus.APPROVED)
        pending = make_gallery(admin_user)

        assert client.get(f"{GALLERY_URL}/{approved.id}", headers=auth_headers).status_code == 200
        denied = client.get(f"{GALLERY_URL}/{pending.id}", headers=auth_headers)
        assert denied.status_code == 403
        assert denied.json()["message"] == "Access denied for this gallery"

    def test_admin_cannot_see_others_approved(
        self, client, other_admin_headers, admin_user, make_gallery
    ):
        gallery = make_gallery(admin_user, ApprovalStatus.APPROVED)

        response = client.get(f"{GALLERY_URL}/{gallery.id}", headers=other_admin_headers)

        assert response.status_code == 403

    def test_admin_sees_others_pending(
        self, client, other_admin_headers, admin_user, make_gallery
    ):
        gallery = make_gallery(admin_user)

        response = client.get(f"{GALLERY_URL}/{gallery.id}", headers=other_admin_headers)

        assert response.status_code == 200

    def test_listings(
        self, client, admin_headers, superadmin_headers, admin_user, other_admin, make_gallery
    ):
        approved = make_gallery(admin_user, ApprovalStatus.APPROVED, title="Approved one")
        pending = make_gallery(admin_user, title="Pending one")
        make_gallery(other_admin, ApprovalStatus.REJECTED, title="Rejected one")

        public = client.get(f"{GALLERY_URL}/public").json()["data"]
        everything = client.get(GALLERY_URL, headers=superadmin_headers).json()["data"]
        pending_only = client.get(f"{GALLERY_URL}/pending", headers=superadmin_headers).json()["data"]
        mine = client.get(f"{GALLERY_URL}/my-galleries", headers=admin_headers).json()["data"]

        assert [g["id"] for g in public] == [approved.id]
        assert len(everything) == 3
        assert [g["id"] for g in pending_only] == [pending.id]
        assert {g["id"] for g in mine} == {approved.id, pending.id}

    def test_admin_cannot_list_all(self, client, admin_headers):
        assert client.get(GALLERY_URL, headers=admin_headers).status_code == 403


class TestGalleryImages:
    def test_first_upload_becomes_thumbnail(
        self, client, admin_headers, admin_user, make_gallery
    ):
        gallery = make_gallery(admin_user)

        first = upload(client, admin_headers, gallery.id)
        second = upload(client, admin_headers, gallery.id, name="second.png", content_type="image/png")

        assert first.status_code == 200
        assert first.json()["message"] == "Image uploaded and added to gallery successfully"
        first_data = first.json()["data"]
        assert first_data["isThumbnail"] is True
        assert first_data["format"] == "webp"
        assert first_data["imageUrl"].startswith(f"/uploads/galleries/gallery-{gallery.id}/image-")
        assert second.json()["data"]["isThumbnail"] is False

        detail = client.get(f"{GALLERY_URL}/{gallery.id}", headers=admin_headers).json()["data"]
        assert detail["thumbnailUrl"] == first_data["imageUrl"]
        assert len(detail["images"]) == 2

    def test_upload_to_missing_gallery(self, client, admin_headers):
        response = upload(client, admin_headers, 4040)

        assert response.status_code == 404

    def test_upload_requires_gallery_id(self, client, admin_headers):
        response = client.post(
            f"{GALLERY_URL}/upload-image",
            files={"image": ("photo.jpg", io.BytesIO(make_image_bytes("JPEG")), "image/jpeg")},
            headers=admin_headers,
        )

        assert response.status_code == 422
        assert "galleryId" in response.json()["errors"]

    def test_failed_commit_removes_stored_file(
        self, client, admin_headers, admin_user, make_gallery, db_session, monkeypatch
    ):
        gallery = make_gallery(admin_user)

        def fail_commit():
            raise OperationalError("INSERT INTO gallery_images", {}, Exception("database is locked"))

        monkeypatch.setattr(db_session, "commit", fail_commit)
        monkeypatch.setitem(app.dependency_overrides, get_db, lambda: db_session)

        response = upload(client, admin_headers, gallery.id)

        assert response.status_code == 503
        directory = Path(settings.UPLOAD_DIR) / "galleries" / f"gallery-{gallery.id}"
        assert list(directory.iterdir()) == []

    def test_set_thumbnail(
        self, client, admin_headers, admin_user, make_gallery, db_session
    ):
        gallery = make_gallery(admin_user)
        upload(client, admin_headers, gallery.id)
        second_id = upload(client, admin_headers, gallery.id).json()["data"]["imageId"]

        response = client.patch(
            f"{GALLERY_URL}/{gallery.id}/images/{second_id}/set-thumbnail",
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["isThumbnail"] is True
        thumbnails = (
            db_session.query(GalleryImage)
            .filter(GalleryImage.gallery_id == gallery.id, GalleryImage.is_thumbnail.is_(True))
            .all()
        )
        assert [image.id for image in thumbnails] == [second_id]

    def test_set_thumbnail_unknown_image(
        self, client, admin_headers, admin_user, make_gallery
    ):
        gallery = make_gallery(admin_user)

        response = client.patch(
            f"{GALLERY_URL}/{gallery.id}/images/123/set-thumbnail", headers=admin_headers
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Image not found in this gallery"

    def test_deleting_thumbnail_promotes_next_image(
        self, client, admin_headers, admin_user, make_gallery, db_session
    ):
        gallery = make_gallery(admin_user)
        first = upload(client, admin_headers, gallery.id).json()["data"]
        second = upload(client, admin_headers, gallery.id).json()["data"]
        first_path = Path(settings.UPLOAD_DIR) / first["imageUrl"].split("/uploads/", 1)[1]
        assert first_path.is_file()

        response = client.delete(
            f"{GALLERY_URL}/{gallery.id}/images/{first['imageId']}", headers=admin_headers
        )

        assert response.status_code == 200
        assert not first_path.exists()
        db_session.expire_all()
        remaining = db_session.query(GalleryImage).all()
        assert [(i.id, i.is_thumbnail) for i in remaining] == [(second["imageId"], True)]

    def test_delete_gallery_removes_directory(
        self, client, admin_headers, admin_user, make_gallery, db_session
    ):
        gallery = make_gallery(admin_user)
        upload(client, admin_headers, gallery.id)
        directory = Path(settings.UPLOAD_DIR) / "galleries" / f"gallery-{gallery.id}"
        assert directory.is_dir()

        response = client.delete(f"{GALLERY_URL}/{gallery.id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["message"] == "Gallery and all associated images deleted successfully"
        assert not directory.exists()
        db_session.expire_all()
        assert db_session.query(GalleryImage).count() == 0
