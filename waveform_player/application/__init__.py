"""Application layer: arbitration, playback state and the player facade."""

from .arbitration import PlaybackArbiter, get_default_arbiter
from .bootstrap import PlayerServices, create_player, initialize_player_services
from .controller import WaveformPlayerController
from .debounce import Debouncer
from .dispatch import EventQueue
from .playback import PlaybackStateMachine
from .player import PlayerSnapshot, WaveformPlayer

__all__ = [
    "Debouncer",
    "EventQueue",
    "PlaybackArbiter",
    "PlaybackStateMachine",
    "PlayerServices",
    "PlayerSnapshot",
    "WaveformPlayer",
    "WaveformPlayerController",
    "create_player",
    "get_default_arbiter",
    "initialize_player_services",
]
