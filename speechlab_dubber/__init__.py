"""SpeechLab Dubber: async client for the SpeechLab audio-dubbing API.

WHY: SpeechLab dubs audio asynchronously on its own servers. Callers want a
single "dub this audio" call that returns a shareable link, without caring
about login tokens, expired sessions, or how long the remote job takes.

HOW: Three layers: config (settings and language rules), api (token
session, HTTP client, typed wire models), core (completion poller and the
orchestrator that sequences submit → poll → link).

RULES:
- All remote calls go through SpeechLabClient
- Failures surface as one of the SpeechLabError subclasses in errors.py
- The cached login token is shared process-wide unless a session is injected
"""

__version__ = "0.1.0"
