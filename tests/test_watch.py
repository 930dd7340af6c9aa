"""Tests for the watch channel lifecycle."""

from datetime import datetime, timedelta, timezone

import pytest

from calendar_watch.calendar.errors import TransientFetchError
from calendar_watch.calendar.watch import PushNotification, WatchChannelManager
from calendar_watch.models.event import WatchChannel

WEBHOOK_URL = "https://watch.example.com/hook"


@pytest.fixture
def manager(repository):
    """Manager with the default five minute margin."""
    return WatchChannelManager(repository, WEBHOOK_URL)


class TestPushNotification:
    """Tests for PushNotification.from_headers."""

    def test_from_headers(self):
        """Test X-Goog headers are read case-insensitively."""
        notification = PushNotification.from_headers(
            {
                "X-Goog-Channel-ID": "chan-1",
                "x-goog-resource-id": "resource-1",
                "X-Goog-Resource-State": "exists",
                "X-Goog-Channel-Token": "secret",
                "X-Goog-Message-Number": "7",
            }
        )
        assert notification.channel_id == "chan-1"
        assert notification.resource_id == "resource-1"
        assert notification.resource_state == "exists"
        assert notification.channel_token == "secret"
        assert notification.message_number == "7"
        assert not notification.is_sync_handshake

    def test_missing_headers(self):
        """Test absent headers give empty identifiers."""
        notification = PushNotification.from_headers({})
        assert notification.channel_id == ""
        assert notification.resource_state is None

    def test_sync_handshake(self):
        """Test state=sync is recognised."""
        notification = PushNotification("c", "r", resource_state="sync")
        assert notification.is_sync_handshake


class TestNeedsRenewal:
    """Tests for WatchChannelManager.needs_renewal."""

    def test_no_channel(self, manager, now):
        assert manager.needs_renewal(None, now)

    def test_no_expiration(self, manager, now):
        """Test a channel without expiration is always replaced."""
        assert manager.needs_renewal(WatchChannel(channel_id="c", resource_id="r"), now)

    def test_plenty_of_time(self, manager, active_channel, now):
        assert not manager.needs_renewal(active_channel, now)

    def test_within_margin(self, manager, now):
        """Test a channel expiring inside the margin is renewed."""
        channel = WatchChannel(
            channel_id="c", resource_id="r", expiration=now + timedelta(minutes=4)
        )
        assert manager.needs_renewal(channel, now)

    def test_exactly_at_margin(self, manager, now):
        """Test the margin boundary counts as due."""
        channel = WatchChannel(
            channel_id="c", resource_id="r", expiration=now + timedelta(minutes=5)
        )
        assert manager.needs_renewal(channel, now)

    def test_expired(self, manager, now):
        channel = WatchChannel(
            channel_id="c", resource_id="r", expiration=now - timedelta(hours=1)
        )
        assert manager.needs_renewal(channel, now)


class TestEnsure:
    """Tests for WatchChannelManager.ensure."""

    @pytest.mark.asyncio
    async def test_registers_when_missing(self, manager, repository, make_client, now):
        """Test a channel is registered and persisted when none exists."""
        client = make_client()

        channel = await manager.ensure(client, now)

        assert len(client.watch_calls) == 1
        call = client.watch_calls[0]
        assert call["webhook_url"] == WEBHOOK_URL
        assert len(call["channel_id"]) == 32
        assert channel.channel_id == call["channel_id"]
        assert channel.resource_id == "resource-1"
        assert channel.expiration == datetime(2025, 11, 13, 3, 0, tzinfo=timezone.utc)
        assert await repository.load_channel() == channel

    @pytest.mark.asyncio
    async def test_reuses_active_channel(self, manager, repository, make_client, active_channel, now):
        """Test a channel with time left is reused without a provider call."""
        await repository.save_channel(active_channel)
        client = make_client()

        channel = await manager.ensure(client, now)

        assert channel == active_channel
        assert client.watch_calls == []

    @pytest.mark.asyncio
    async def test_renews_near_expiry_once(self, manager, repository, make_client, now):
        """Test a channel inside the margin is replaced by exactly one new one."""
        await repository.save_channel(
            WatchChannel(
                channel_id="old", resource_id="resource-0", expiration=now + timedelta(minutes=3)
            )
        )
        client = make_client()

        first = await manager.ensure(client, now)
        second = await manager.ensure(client, now)

        assert len(client.watch_calls) == 1
        assert first.channel_id != "old"
        assert second == first

    @pytest.mark.asyncio
    async def test_passes_token_and_ttl(self, repository, make_client, now):
        """Test the configured token and ttl reach the provider."""
        manager = WatchChannelManager(
            repository, WEBHOOK_URL, channel_token="secret", ttl_seconds=86400
        )
        client = make_client()

        await manager.ensure(client, now)

        assert client.watch_calls[0]["token"] == "secret"
        assert client.watch_calls[0]["ttl_seconds"] == 86400

    @pytest.mark.asyncio
    async def test_registration_failure_keeps_old_channel(self, manager, repository, make_client, now):
        """Test a failed registration leaves the stored channel untouched."""
        old = WatchChannel(
            channel_id="old", resource_id="resource-0", expiration=now + timedelta(minutes=1)
        )
        await repository.save_channel(old)
        client = make_client(watch_response=TransientFetchError("events.watch failed: 503"))

        with pytest.raises(TransientFetchError):
            await manager.ensure(client, now)

        assert await repository.load_channel() == old

    @pytest.mark.asyncio
    async def test_response_without_resource_id(self, manager, repository, make_client, now):
        """Test a registration answer lacking resourceId is a fetch failure."""
        client = make_client(watch_response={"kind": "api#channel", "id": "x"})

        with pytest.raises(TransientFetchError, match="no resourceId"):
            await manager.ensure(client, now)

        assert await repository.load_channel() is None

    @pytest.mark.asyncio
    async def test_requires_webhook_url(self, repository, make_client, now):
        """Test registering without a public URL fails."""
        manager = WatchChannelManager(repository, None)

        with pytest.raises(RuntimeError, match="PUBLIC_BASE_URL"):
            await manager.ensure(make_client(), now)


class TestValidateInbound:
    """Tests for WatchChannelManager.validate_inbound."""

    @pytest.mark.asyncio
    async def test_matching_channel(self, manager, repository, active_channel):
        await repository.save_channel(active_channel)
        assert await manager.validate_inbound(PushNotification("chan-1", "resource-1", "exists"))

    @pytest.mark.asyncio
    async def test_no_channel_stored(self, manager):
        """Test pushes are rejected before any channel exists."""
        assert not await manager.validate_inbound(PushNotification("chan-1", "resource-1"))

    @pytest.mark.asyncio
    async def test_channel_id_mismatch(self, manager, repository, active_channel):
        """Test pushes from a replaced channel are rejected."""
        await repository.save_channel(active_channel)
        assert not await manager.validate_inbound(PushNotification("chan-0", "resource-1"))

    @pytest.mark.asyncio
    async def test_resource_id_mismatch(self, manager, repository, active_channel):
        await repository.save_channel(active_channel)
        assert not await manager.validate_inbound(PushNotification("chan-1", "resource-9"))

    @pytest.mark.asyncio
    async def test_token_checked_when_configured(self, repository, active_channel):
        """Test a configured channel token must match."""
        manager = WatchChannelManager(repository, WEBHOOK_URL, channel_token="secret")
        await repository.save_channel(active_channel)

        assert not await manager.validate_inbound(
            PushNotification("chan-1", "resource-1", channel_token="wrong")
        )
        assert await manager.validate_inbound(
            PushNotification("chan-1", "resource-1", channel_token="secret")
        )
