"""SpeechLab API package: async HTTP interface to the dubbing service.

WHY: The dubbing flow needs to log in, create projects, look them up, and
generate sharing links. This package encapsulates all SpeechLab API
communication behind an async client class.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. SpeechLabClient
provides one method per remote operation; TokenSession caches the login
token; response data is parsed into typed dataclasses from models.py.

RULES:
- All HTTP calls go through SpeechLabClient (no direct httpx usage elsewhere)
- Authentication is via Bearer token obtained from /v1/auth/login
"""

from speechlab_dubber.api.client import SpeechLabClient
from speechlab_dubber.api.models import (
    Credentials,
    DubbingResult,
    DubJobRequest,
    JobStatus,
    Project,
)
from speechlab_dubber.api.session import TokenSession, default_session

__all__ = [
    "Credentials",
    "DubbingResult",
    "DubJobRequest",
    "JobStatus",
    "Project",
    "SpeechLabClient",
    "TokenSession",
    "default_session",
]
