"""Talkgroup to gateway routing."""

from __future__ import annotations

from typing import Any

from trunkctl.rewrite import DMRFrame


class GatewayRouter:
    """Finds the gateway a frame's destination talkgroup is routed to."""

    def __init__(self, settings: Any, logger: Any = None) -> None:
        self._settings = settings
        self._logger = logger

    def find_route(self, frame: DMRFrame) -> int | None:
        """Gateway id for the frame's destination, or None when unrouted."""
        return self._settings.talkgroup_routing_table.get(frame.dst_id)