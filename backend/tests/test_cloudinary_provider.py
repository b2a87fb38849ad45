"""Tests for CloudinaryProvider. The cloudinary SDK is patched out."""
from unittest.mock import MagicMock, patch

import pytest

from panel.config import CloudinarySecrets
from panel.uploads.cloudinary_provider import CloudinaryProvider

UPLOAD_RESULT = {
    "public_id": "uploads/1700000000000-avatar-3f9c2a1b",
    "secure_url": "https://res.cloudinary.com/demo/image/upload/v1/uploads/1700000000000-avatar-3f9c2a1b.png",
    "format": "png",
    "width": 64,
    "height": 64,
    "resource_type": "image",
    "bytes": 2048,
}


class TestCloudinaryProviderConfig:
    @patch("panel.uploads.cloudinary_provider.cloudinary")
    def test_configures_sdk_with_credentials(self, mock_cloudinary):
        CloudinaryProvider(cloud_name="demo", api_key="key", api_secret="secret")
        mock_cloudinary.config.assert_any_call(
            secure=True, cloud_name="demo", api_key="key", api_secret="secret",
        )

    @patch("panel.uploads.cloudinary_provider.cloudinary")
    def test_partial_credentials_leave_env_config(self, mock_cloudinary):
        CloudinaryProvider(cloud_name="demo")
        mock_cloudinary.config.assert_any_call(secure=True)

    @patch("panel.uploads.cloudinary_provider.cloudinary")
    def test_from_secrets(self, mock_cloudinary):
        provider = CloudinaryProvider.from_secrets(
            CloudinarySecrets(cloud_name="demo", api_key="k", api_secret="s")
        )
        assert provider.cloud_name == "demo"


class TestCloudinaryProviderCalls:
    @pytest.mark.asyncio
    @patch("panel.uploads.cloudinary_provider.cloudinary")
    async def test_upload_passes_options(self, mock_cloudinary):
        mock_cloudinary.uploader.upload.return_value = UPLOAD_RESULT
        provider = CloudinaryProvider("demo", "k", "s")

        result = await provider.upload(
            "data:image/png;base64,AAAA",
            folder="uploads",
            public_id="1700000000000-avatar-3f9c2a1b",
            filename_override="avatar.png",
        )

        assert result == UPLOAD_RESULT
        mock_cloudinary.uploader.upload.assert_called_once_with(
            "data:image/png;base64,AAAA",
            folder="uploads",
            public_id="1700000000000-avatar-3f9c2a1b",
            resource_type="auto",
            filename_override="avatar.png",
        )

    @pytest.mark.asyncio
    @patch("panel.uploads.cloudinary_provider.cloudinary")
    async def test_upload_raises_on_empty_result(self, mock_cloudinary):
        mock_cloudinary.uploader.upload.return_value = None
        provider = CloudinaryProvider("demo", "k", "s")

        with pytest.raises(RuntimeError, match="no result"):
            await provider.upload("data:,", folder="uploads", public_id="x")

    @pytest.mark.asyncio
    @patch("panel.uploads.cloudinary_provider.cloudinary")
    async def test_upload_propagates_sdk_errors(self, mock_cloudinary):
        mock_cloudinary.uploader.upload.side_effect = Exception("Invalid image file")
        provider = CloudinaryProvider("demo", "k", "s")

        with pytest.raises(Exception, match="Invalid image file"):
            await provider.upload("data:,", folder="uploads", public_id="x")

    @pytest.mark.asyncio
    @patch("panel.uploads.cloudinary_provider.cloudinary")
    async def test_destroy(self, mock_cloudinary):
        mock_cloudinary.uploader.destroy.return_value = {"result": "ok"}
        provider = CloudinaryProvider("demo", "k", "s")

        assert await provider.destroy("uploads/x") == {"result": "ok"}
        mock_cloudinary.uploader.destroy.assert_called_once_with("uploads/x")

    @pytest.mark.asyncio
    @patch("panel.uploads.cloudinary_provider.cloudinary")
    async def test_destroy_with_resource_type(self, mock_cloudinary):
        mock_cloudinary.uploader.destroy.return_value = {"result": "not found"}
        provider = CloudinaryProvider("demo", "k", "s")

        result = await provider.destroy("uploads/clip", resource_type="video")

        assert result == {"result": "not found"}
        mock_cloudinary.uploader.destroy.assert_called_once_with("uploads/clip", resource_type="video")
