"""
Voice catalogue proxy.

Lists voices and fetches single voices from the provider on behalf of
the caller. Responses are relayed as-is; failures carry the provider's
status so a 404 for an unknown voice stays a 404.

A VoiceCache hook sits in front of the listing call. The shipped
NullVoiceCache never hits and stores nothing; cache errors are logged
and treated as a miss, never surfaced to the caller.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from cartesia_gateway.core.config import GatewayConfig
from cartesia_gateway.core.logging import debug, get_logger, warn
from cartesia_gateway.core.metrics import GatewayMetrics
from cartesia_gateway.services.upstream import send_passthrough
from cartesia_gateway.services.validators import VoiceListQuery

_LOG = get_logger("cartesia-gateway.voices")


class VoiceCache:
    """Interface for a voice listing cache."""

    def get(self, query: VoiceListQuery) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def put(self, voices: List[Dict[str, Any]]) -> None:
        raise NotImplementedError


class NullVoiceCache(VoiceCache):
    """Always misses. Listing results are not stored anywhere."""

    def get(self, query: VoiceListQuery) -> Optional[Dict[str, Any]]:
        debug(_LOG, "voice_cache_miss")
        return None

    def put(self, voices: List[Dict[str, Any]]) -> None:
        debug(_LOG, "voice_cache_skip", count=len(voices))


class VoiceService:
    def __init__(
        self,
        config: GatewayConfig,
        client: httpx.Client,
        cache: Optional[VoiceCache] = None,
        metrics: Optional[GatewayMetrics] = None,
    ):
        self.config = config
        self.client = client
        self.cache = cache or NullVoiceCache()
        self.metrics = metrics

    def list_voices(self, token: str, query: VoiceListQuery) -> Dict[str, Any]:
        """
        List voices, consulting the cache first.

        Returns:
            Provider response ``{data, has_more, next_page}`` unchanged.
        """
        cached = self._cache_get(query)
        if cached is not None:
            return cached

        result = send_passthrough(
            self.client,
            self.config.upstream,
            "GET",
            "/voices",
            token=token,
            params=query.to_params(),
            operation="voices",
            message_prefix="Cartesia API error: ",
            metrics=self.metrics,
        )

        if isinstance(result, dict) and isinstance(result.get("data"), list):
            self._cache_put(result["data"])
        return result

    def get_voice(self, token: str, voice_id: str) -> Dict[str, Any]:
        return send_passthrough(
            self.client,
            self.config.upstream,
            "GET",
            f"/voices/{quote(voice_id, safe='')}",
            token=token,
            operation="voice",
            message_prefix="Failed to fetch voice: ",
            metrics=self.metrics,
        )

    def _cache_get(self, query: VoiceListQuery) -> Optional[Dict[str, Any]]:
        try:
            return self.cache.get(query)
        except Exception as e:
            warn(_LOG, "voice_cache_get_failed", error=str(e))
            return None

    def _cache_put(self, voices: List[Dict[str, Any]]) -> None:
        try:
            self.cache.put(voices)
        except Exception as e:
            warn(_LOG, "voice_cache_put_failed", error=str(e))
