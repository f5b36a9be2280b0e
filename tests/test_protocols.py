"""Tests for chuk_mcp_terrain.core.protocols."""

import pytest
from unittest.mock import AsyncMock

from chuk_mcp_terrain.core.protocols import ProtocolRegistry


class TestRegister:
    def test_register_new(self):
        registry = ProtocolRegistry()
        assert registry.register("slope", AsyncMock()) is True
        assert registry.is_registered("slope")

    def test_first_registration_wins(self):
        registry = ProtocolRegistry()
        first = AsyncMock(return_value="first")
        second = AsyncMock(return_value="second")

        assert registry.register("slope", first) is True
        assert registry.register("slope", second) is False
        assert registry.names == ["slope"]

    async def test_duplicate_does_not_replace_handler(self):
        registry = ProtocolRegistry()
        registry.register("slope", AsyncMock(return_value="first"))
        registry.register("slope", AsyncMock(return_value="second"))
        assert await registry.resolve("slope://1/0/0") == "first"

    def test_names_sorted(self):
        registry = ProtocolRegistry()
        registry.register("slope-aspect", AsyncMock())
        registry.register("slope", AsyncMock())
        assert registry.names == ["slope", "slope-aspect"]

    def test_unregistered(self):
        assert not ProtocolRegistry().is_registered("shadow")


class TestParseUrl:
    def test_parse(self):
        assert ProtocolRegistry.parse_url("slope://12/2180/1432") == ("slope", 12, 2180, 1432)

    def test_hyphenated_name(self):
        assert ProtocolRegistry.parse_url("slope-aspect://0/0/0") == ("slope-aspect", 0, 0, 0)

    def test_whitespace_stripped(self):
        assert ProtocolRegistry.parse_url("  slope://1/1/1\n") == ("slope", 1, 1, 1)

    @pytest.mark.parametrize(
        "url",
        [
            "slope:/1/2/3",
            "slope://1/2",
            "slope://1/2/3/4",
            "slope://a/b/c",
            "slope://-1/2/3",
            "://1/2/3",
            "Slope://1/2/3",
            "https://example.com/1/2/3.png",
        ],
    )
    def test_malformed(self, url):
        with pytest.raises(ValueError, match="Invalid tile URL"):
            ProtocolRegistry.parse_url(url)


class TestResolve:
    async def test_dispatches_coordinates(self):
        registry = ProtocolRegistry()
        handler = AsyncMock(return_value=b"png")
        registry.register("slope", handler)

        result = await registry.resolve("slope://11/1090/716")

        assert result == b"png"
        handler.assert_awaited_once_with(11, 1090, 716)

    async def test_unknown_protocol(self):
        registry = ProtocolRegistry()
        registry.register("slope", AsyncMock())
        with pytest.raises(ValueError, match="No tile protocol registered for 'shadow'"):
            await registry.resolve("shadow://1/0/0")

    async def test_malformed_url(self):
        registry = ProtocolRegistry()
        with pytest.raises(ValueError):
            await registry.resolve("not a url")

    async def test_handler_errors_propagate(self):
        registry = ProtocolRegistry()
        registry.register("slope", AsyncMock(side_effect=RuntimeError("boom")))
        with pytest.raises(RuntimeError, match="boom"):
            await registry.resolve("slope://1/0/0")
