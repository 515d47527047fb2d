"""Assembly of shared player services and player sessions."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from ..config import PlayerConfig
from ..domain.source import AudioSource
from ..domain.waveform import WaveformReducer
from ..integrations.sample_reader import SoundfileSampleReader
from ..integrations.vlc_transport import VlcTransport
from ..storage.waveform_cache import WaveformCache
from .arbitration import PlaybackArbiter, get_default_arbiter
from .controller import WaveformPlayerController
from .player import WaveformPlayer


@dataclass(frozen=True)
class PlayerServices:
    arbiter: PlaybackArbiter
    cache: WaveformCache
    sample_reader: Any
    reducer: WaveformReducer
    executor: ThreadPoolExecutor

    def shutdown(self) -> None:
        self.executor.shutdown(wait=False, cancel_futures=True)


def initialize_player_services(
    *,
    config: PlayerConfig,
    logger,
    arbiter: PlaybackArbiter | None = None,
    sample_reader=None,
    max_workers: int = 2,
) -> PlayerServices:
    reader = sample_reader or SoundfileSampleReader(
        logger=logger,
        asset_dir=config.asset_dir,
        timeout_seconds=config.source_open_timeout_seconds,
    )
    cache = WaveformCache(max_entries=config.cache_max_entries, logger=logger)
    logger.debug(
        "Player services ready: cache_max_entries=%s asset_dir=%s",
        config.cache_max_entries,
        config.asset_dir,
    )
    return PlayerServices(
        arbiter=arbiter or get_default_arbiter(),
        cache=cache,
        sample_reader=reader,
        reducer=WaveformReducer(reader, logger),
        executor=ThreadPoolExecutor(
            max_workers=max(1, int(max_workers)),
            thread_name_prefix="waveform-player",
        ),
    )


def create_player(
    source: AudioSource,
    *,
    services: PlayerServices,
    config: PlayerConfig,
    logger,
    transport=None,
    controller: WaveformPlayerController | None = None,
    timer_factory=None,
    **callbacks,
) -> WaveformPlayer:
    """Build a player session; a VLC transport is created when none is given."""
    if transport is None:
        transport = VlcTransport(
            logger=logger,
            asset_dir=config.asset_dir,
            poll_interval_ms=config.position_poll_ms,
            open_timeout_seconds=config.source_open_timeout_seconds,
        )
    player = WaveformPlayer(
        source,
        transport=transport,
        reducer=services.reducer,
        cache=services.cache,
        arbiter=services.arbiter,
        logger=logger,
        executor=services.executor,
        bar_width=config.bar_width,
        bar_spacing=config.bar_spacing,
        min_amplitude=config.min_amplitude,
        max_amplitude=config.max_amplitude,
        debounce_seconds=config.resize_debounce_ms / 1000.0,
        auto_stop_tolerance_ms=config.auto_stop_tolerance_ms,
        autoplay=config.autoplay,
        timer_factory=timer_factory,
        **callbacks,
    )
    if controller is not None:
        controller.attach(player)
    return player
