import pytest

from conftest import FakeResponder, http_error
from haven_bot.config import MIB
from haven_bot.delivery import build_success_message, deliver, remove_quietly, staged_file
from haven_bot.errors import DeliveryError
from haven_bot.policy import SizeTier
from haven_bot.sources import MediaMetadata, SourceKind
from haven_bot.transfer import TransferResult

METADATA = MediaMetadata(title="Clip", author_name="Someone")


@pytest.mark.asyncio
async def test_staged_file_removes_file_on_success(tmp_path):
    async with staged_file(tmp_path, "video") as path:
        path.write_bytes(b"data")
        assert path.exists()

    assert not path.exists()
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_staged_file_removes_file_on_error(tmp_path):
    with pytest.raises(RuntimeError):
        async with staged_file(tmp_path, "tiktok") as path:
            path.write_bytes(b"partial")
            raise RuntimeError("boom")

    assert not path.exists()


@pytest.mark.asyncio
async def test_staged_file_tolerates_missing_file(tmp_path):
    async with staged_file(tmp_path, "video") as path:
        pass

    assert not path.exists()


def test_remove_quietly_ignores_missing_file(tmp_path):
    remove_quietly(tmp_path / "gone.mp4")


def test_success_message_for_youtube():
    result = TransferResult(local_path=None, size_bytes=MIB, size_tier=SizeTier.NORMAL)

    message = build_success_message(SourceKind.YOUTUBE, METADATA, result)

    assert message == "✅ Downloaded: **Clip**\n📺 Channel: Someone"


def test_success_message_for_tiktok_with_advisory():
    result = TransferResult(local_path=None, size_bytes=60 * MIB, size_tier=SizeTier.REQUIRES_BOOST_OR_NITRO)

    message = build_success_message(SourceKind.TIKTOK, METADATA, result)

    assert message.startswith("✅ Downloaded: **Clip**\n👤 User: Someone\n\n⚠️")
    assert "60.00 MB" in message


def test_success_message_without_author():
    result = TransferResult(local_path=None, size_bytes=MIB, size_tier=SizeTier.NORMAL)

    message = build_success_message(SourceKind.YOUTUBE, MediaMetadata(title="Clip"), result)

    assert message.endswith("📺 Channel: n/a")


@pytest.mark.asyncio
async def test_deliver_attaches_file(tmp_path, responder):
    path = tmp_path / "video_1.mp4"
    path.write_bytes(b"data")
    result = TransferResult(local_path=path, size_bytes=4, size_tier=SizeTier.NORMAL)

    await deliver(responder, SourceKind.YOUTUBE, METADATA, result)

    assert responder.attachments == [path]
    assert responder.last["file_existed"] is True


@pytest.mark.asyncio
async def test_deliver_maps_discord_errors(tmp_path):
    responder = FakeResponder(fail_on_attachment=http_error(status=413, reason="Payload Too Large"))
    path = tmp_path / "video_1.mp4"
    path.write_bytes(b"data")
    result = TransferResult(local_path=path, size_bytes=4, size_tier=SizeTier.NORMAL)

    with pytest.raises(DeliveryError, match="video_1.mp4"):
        await deliver(responder, SourceKind.YOUTUBE, METADATA, result)
