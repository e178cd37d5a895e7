from __future__ import annotations

from soundfly.config import Settings
from soundfly.domain.ports.audio_extractor import IAudioExtractor
from soundfly.infrastructure.extraction.cobalt import CobaltExtractor
from soundfly.infrastructure.extraction.manifest import ManifestExtractor
from soundfly.infrastructure.extraction.piped import PipedExtractor


def build_extractor(cfg: Settings) -> IAudioExtractor:
    """One strategy is active at a time; ``extraction_strategy`` picks it."""
    strategy = cfg.extraction_strategy
    if strategy == "piped":
        return PipedExtractor(
            cfg.piped_instances,
            timeout=cfg.extraction_timeout,
            preference_ttl=cfg.extraction_preference_ttl,
        )
    if strategy == "manifest":
        return ManifestExtractor(
            cfg.manifest_player_clients,
            download_dir=cfg.audio_download_dir,
            timeout=cfg.extraction_timeout,
            preference_ttl=cfg.extraction_preference_ttl,
        )
    if strategy == "cobalt":
        return CobaltExtractor(
            cfg.cobalt_instances,
            timeout=cfg.extraction_timeout,
            preference_ttl=cfg.extraction_preference_ttl,
        )
    raise ValueError(f"unknown extraction strategy: {strategy!r}")
