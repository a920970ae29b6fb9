"""Shared utilities."""

import random
from typing import Optional
from shared.constants import MIN_DEBUG_PORT, MAX_DEBUG_PORT


def generate_edge_id(source: str, target: str,
                     source_handle: Optional[str] = None,
                     target_handle: Optional[str] = None) -> str:
    return f"edge-{source}{source_handle or ''}-{target}{target_handle or ''}"


def random_debug_port(rng: Optional[random.Random] = None) -> int:
    return (rng or random).randint(MIN_DEBUG_PORT, MAX_DEBUG_PORT)
