"""Core dubbing flow: completion poller and orchestrator."""

from speechlab_dubber.core.dubbing import DubbingRequest, check_connection, dub_audio
from speechlab_dubber.core.poller import CompletionPoller, PollOutcome, PollState

__all__ = [
    "CompletionPoller",
    "DubbingRequest",
    "PollOutcome",
    "PollState",
    "check_connection",
    "dub_audio",
]
