from fastapi import status
from fastapi.testclient import TestClient

from tests.consts import (
    TEST_FILE_CONTENT,
    TEST_FILE_CONTENT_TYPE,
    TEST_FILE_NAME,
    TEST_PDF_CONTENT,
    TEST_PDF_NAME,
    THUMBNAIL_BOX,
)
from tests.fixtures.images import image_size, make_image_bytes


def upload(client: TestClient, name: str, content: bytes, content_type: str = "application/octet-stream"):
    return client.post("/upload", files={"file": (name, content, content_type)})


def listing_by_name(client: TestClient) -> dict:
    response = client.get("/files")
    assert response.status_code == status.HTTP_200_OK
    return {record["name"]: record for record in response.json()}


def test__upload_file__happy_path(client: TestClient):
    response = upload(client, TEST_FILE_NAME, TEST_FILE_CONTENT, TEST_FILE_CONTENT_TYPE)

    assert response.status_code == status.HTTP_201_CREATED
    assert response.json() == {
        "name": TEST_FILE_NAME,
        "size": len(TEST_FILE_CONTENT),
        "message": f"New file uploaded: {TEST_FILE_NAME}",
        "thumbnailScheduled": False,
    }

    # update an existing file
    updated_content = b"updated content"
    response = upload(client, TEST_FILE_NAME, updated_content, TEST_FILE_CONTENT_TYPE)

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["message"] == f"Existing file updated: {TEST_FILE_NAME}"
    assert response.json()["size"] == len(updated_content)


def test__list_files__empty_store(client: TestClient):
    response = client.get("/files")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == []


def test__list_files__after_uploads(client: TestClient):
    upload(client, "b.txt", b"bbbb")
    upload(client, "a.txt", b"a")

    response = client.get("/files")

    assert response.status_code == status.HTTP_200_OK
    files = response.json()
    assert [f["name"] for f in files] == ["a.txt", "b.txt"]
    assert [f["size"] for f in files] == [1, 4]
    for f in files:
        assert set(f) == {"name", "size", "modTime"}
        assert f["modTime"].endswith("Z")


def test__download_file__returns_uploaded_bytes(client: TestClient):
    upload(client, TEST_PDF_NAME, TEST_PDF_CONTENT, "application/pdf")

    response = client.get(f"/download/{TEST_PDF_NAME}")

    assert response.status_code == status.HTTP_200_OK
    assert response.content == TEST_PDF_CONTENT
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["content-length"] == str(len(TEST_PDF_CONTENT))
    assert response.headers["content-disposition"] == f'attachment; filename="{TEST_PDF_NAME}"'


def test__download_file__unicode_name(client: TestClient, settings):
    (settings.store_dir / "résumé.txt").write_bytes(b"cv")

    response = client.get("/download/résumé.txt")

    assert response.status_code == status.HTTP_200_OK
    assert response.content == b"cv"
    assert response.headers["content-disposition"] == "attachment; filename*=utf-8''r%C3%A9sum%C3%A9.txt"


def test__upload_file__path_components_are_discarded(client: TestClient, settings):
    response = upload(client, "a/b/evil.txt", b"payload")

    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["name"] == "evil.txt"
    assert (settings.store_dir / "evil.txt").read_bytes() == b"payload"
    assert list(listing_by_name(client)) == ["evil.txt"]


def test__download_file__path_components_are_discarded(client: TestClient, tmp_path):
    upload(client, "evil.txt", b"inside the store")
    (tmp_path / "secret.txt").write_bytes(b"outside the store")

    assert client.get("/download/a/b/evil.txt").content == b"inside the store"
    assert client.get("/download/..%2Fsecret.txt").status_code == status.HTTP_404_NOT_FOUND
    assert client.get("/download/..%2Fuploads%2Fevil.txt").content == b"inside the store"


def test__upload_image__thumbnail_listed(client: TestClient, settings):
    cat_png = make_image_bytes(400, 200, "PNG", pad_to=51200)

    response = upload(client, "cat.png", cat_png, "image/png")

    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["thumbnailScheduled"] is True

    record = listing_by_name(client)["cat.png"]
    assert record["size"] == 51200
    assert record["thumbnailUrl"] == "/thumbnails/cat.png"

    download = client.get("/download/cat.png")
    assert download.content == cat_png

    thumbnail = client.get(record["thumbnailUrl"])
    assert thumbnail.status_code == status.HTTP_200_OK
    assert image_size(thumbnail.content) == (THUMBNAIL_BOX, THUMBNAIL_BOX // 2)


def test__upload_image__uppercase_extension(client: TestClient, jpeg_bytes):
    upload(client, "PHOTO.JPG", jpeg_bytes, "image/jpeg")

    record = listing_by_name(client)["PHOTO.JPG"]
    assert record["thumbnailUrl"] == "/thumbnails/PHOTO.JPG"
    assert image_size(client.get(record["thumbnailUrl"]).content) == (25, 100)


def test__upload_text__never_gets_thumbnail(client: TestClient, settings):
    notes = b"n" * 10240

    response = upload(client, TEST_FILE_NAME, notes, TEST_FILE_CONTENT_TYPE)

    assert response.json()["thumbnailScheduled"] is False
    record = listing_by_name(client)[TEST_FILE_NAME]
    assert record["size"] == 10240
    assert "thumbnailUrl" not in record
    assert list(settings.thumbnail_dir.iterdir()) == []


def test__reupload__store_and_thumbnail_follow_second_upload(client: TestClient):
    first = make_image_bytes(400, 200)
    second = make_image_bytes(100, 400)

    upload(client, "cat.png", first, "image/png")
    upload(client, "cat.png", second, "image/png")

    assert client.get("/download/cat.png").content == second
    assert listing_by_name(client)["cat.png"]["size"] == len(second)
    assert image_size(client.get("/thumbnails/cat.png").content) == (25, 100)


def test__upload_image__background_thumbnail(threaded_client: TestClient, png_bytes):
    response = upload(threaded_client, "cat.png", png_bytes, "image/png")
    assert response.status_code == status.HTTP_201_CREATED

    assert threaded_client.app.state.thumbnail_queue.drain(10)

    record = listing_by_name(threaded_client)["cat.png"]
    assert record["thumbnailUrl"] == "/thumbnails/cat.png"
    assert image_size(threaded_client.get("/thumbnails/cat.png").content) == (100, 50)


def test__thumbnails_disabled__plain_store(no_thumbnails_client: TestClient, png_bytes, tmp_path):
    response = upload(no_thumbnails_client, "cat.png", png_bytes, "image/png")

    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["thumbnailScheduled"] is False
    assert "thumbnailUrl" not in listing_by_name(no_thumbnails_client)["cat.png"]
    assert not (tmp_path / "thumbnails").exists()
    assert no_thumbnails_client.get("/thumbnails/cat.png").status_code == status.HTTP_404_NOT_FOUND


def test__health(client: TestClient):
    response = client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "status": "ok",
        "components": {
            "api": "ready",
            "store": "ready",
            "thumbnails": "ready",
            "ftp": "disabled",
        },
        "thumbnailMode": "inline",
        "ready": True,
    }
