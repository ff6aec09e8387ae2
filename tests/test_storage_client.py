"""S3 object store client, exercised against a stubbed boto3 client."""

import io
from unittest import mock

import boto3
import pytest
from botocore.exceptions import ClientError
from botocore.stub import Stubber

from app.storage_client import ObjectStoreError, S3ObjectStore


@pytest.fixture
def s3():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


def test_upload_returns_public_url_and_key() -> None:
    client = mock.Mock()
    store = S3ObjectStore("shop-images", prefix="katalog_produk", client=client)
    stream = io.BytesIO(b"data")

    stored = store.upload(stream, "Front View.jpg", "image/jpeg")

    assert stored.storage_id.startswith("katalog_produk/katalog-")
    assert "Front-View" in stored.storage_id
    assert stored.url == f"https://shop-images.s3.us-east-1.amazonaws.com/{stored.storage_id}"
    client.upload_fileobj.assert_called_once_with(
        stream, "shop-images", stored.storage_id, ExtraArgs={"ContentType": "image/jpeg"}
    )


def test_upload_keys_are_unique() -> None:
    store = S3ObjectStore("b", client=mock.Mock())
    keys = {store.upload(io.BytesIO(b"x"), "a.png").storage_id for _ in range(5)}
    assert len(keys) == 5


def test_public_base_url_override() -> None:
    store = S3ObjectStore("b", public_base_url="https://cdn.example.com/", client=mock.Mock())
    assert store.url_for("k/1") == "https://cdn.example.com/k/1"


def test_upload_error_is_wrapped() -> None:
    client = mock.Mock()
    client.upload_fileobj.side_effect = ClientError({"Error": {"Code": "500", "Message": "boom"}}, "PutObject")
    store = S3ObjectStore("b", client=client)

    with pytest.raises(ObjectStoreError):
        store.upload(io.BytesIO(b"x"), "a.png", "image/png")


def test_delete_existing_object(s3) -> None:
    store = S3ObjectStore("b", client=s3)
    params = {"Bucket": "b", "Key": "katalog_produk/k1"}
    with Stubber(s3) as stub:
        stub.add_response("head_object", {}, params)
        stub.add_response("delete_object", {}, params)

        assert store.delete("katalog_produk/k1") is True
        stub.assert_no_pending_responses()


def test_delete_missing_object_reports_not_found(s3) -> None:
    store = S3ObjectStore("b", client=s3)
    with Stubber(s3) as stub:
        stub.add_client_error(
            "head_object",
            service_error_code="404",
            http_status_code=404,
            expected_params={"Bucket": "b", "Key": "gone"},
        )

        assert store.delete("gone") is False
        stub.assert_no_pending_responses()


def test_delete_failure_is_wrapped(s3) -> None:
    store = S3ObjectStore("b", client=s3)
    params = {"Bucket": "b", "Key": "k"}
    with Stubber(s3) as stub:
        stub.add_response("head_object", {}, params)
        stub.add_client_error("delete_object", service_error_code="AccessDenied", http_status_code=403)

        with pytest.raises(ObjectStoreError):
            store.delete("k")
