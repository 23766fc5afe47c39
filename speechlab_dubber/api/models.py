"""SpeechLab API request and response dataclasses.

WHY: The SpeechLab API exchanges loosely-shaped camelCase JSON. Typed
dataclasses make the fields this client relies on explicit, enable IDE
autocompletion, and keep the wire names in one place.

HOW: Response objects have from_dict() factories that tolerate missing
optional keys. The request object has to_payload() producing the exact
JSON body. Project keeps the raw dict so the full project details can be
handed back to callers untouched.

RULES:
- Only COMPLETE and FAILED have meaning; every other status is OTHER
- A missing status is reported as "UNKNOWN"
- Non-dict listing entries and a non-dict "job" are ignored
- Translation/Dub/DubMedia are pass-through metadata, never interpreted
- Nothing here mutates a Project after parsing
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

from speechlab_dubber.config import (
    DEFAULT_UNIT_TYPE,
    DEFAULT_VOICE_MATCHING_MODE,
    PROJECT_NAME_MAX_CHARS,
    normalize_language,
)

UNKNOWN_STATUS = "UNKNOWN"


class JobStatus(str, enum.Enum):
    """Closed classification of the remote project status string.

    WHY: SpeechLab reports an open-ended set of status strings. Only two
    are terminal for this client; collapsing the rest into OTHER means a
    new server-side status can never be mistaken for completion.

    HOW: from_raw() maps the exact strings "COMPLETE" and "FAILED";
    anything else (including None) becomes OTHER.
    """

    COMPLETE = "COMPLETE"
    FAILED = "FAILED"
    OTHER = "OTHER"

    @classmethod
    def from_raw(cls, raw: str | None) -> JobStatus:
        if raw == cls.COMPLETE.value:
            return cls.COMPLETE
        if raw == cls.FAILED.value:
            return cls.FAILED
        return cls.OTHER

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.OTHER


@dataclass(frozen=True)
class Credentials:
    """SpeechLab account email and password. Held in memory only."""

    email: str
    password: str = field(repr=False)

    def is_complete(self) -> bool:
        return bool(self.email) and bool(self.password)


@dataclass
class DubJobRequest:
    """Body of POST /v1/projects/createProjectAndDub.

    WHY: The submit call needs the name limit and the language rule
    applied in exactly one place, and the caller-facing target language
    must never be rewritten.

    HOW: build() applies truncation and normalization; to_payload()
    renders the camelCase JSON body.

    RULES:
    - name is cut to the first 100 characters
    - target_language and dub_accent both go through normalize_language()
    - third_party_id is sent as "thirdPartyID"
    """

    name: str
    source_language: str
    target_language: str
    dub_accent: str
    media_file_uri: str
    third_party_id: str
    unit_type: str = DEFAULT_UNIT_TYPE
    voice_matching_mode: str = DEFAULT_VOICE_MATCHING_MODE

    @classmethod
    def build(
        cls,
        audio_url: str,
        project_name: str,
        target_language: str,
        third_party_id: str,
        source_language: str = "en",
        unit_type: str = DEFAULT_UNIT_TYPE,
        voice_matching_mode: str = DEFAULT_VOICE_MATCHING_MODE,
    ) -> DubJobRequest:
        api_language = normalize_language(target_language)
        return cls(
            name=project_name[:PROJECT_NAME_MAX_CHARS],
            source_language=source_language,
            target_language=api_language,
            dub_accent=api_language,
            media_file_uri=audio_url,
            third_party_id=third_party_id,
            unit_type=unit_type,
            voice_matching_mode=voice_matching_mode,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "sourceLanguage": self.source_language,
            "targetLanguage": self.target_language,
            "dubAccent": self.dub_accent,
            "unitType": self.unit_type,
            "mediaFileURI": self.media_file_uri,
            "voiceMatchingMode": self.voice_matching_mode,
            "thirdPartyID": self.third_party_id,
        }


@dataclass
class DubMedia:
    """One produced artifact (audio, video, subtitle) of a dub."""

    id: str | None = None
    uri: str | None = None
    category: str | None = None
    content_type: str | None = None
    format: str | None = None
    operation_type: str | None = None
    presigned_url: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DubMedia:
        return cls(
            id=data.get("_id"),
            uri=data.get("uri"),
            category=data.get("category"),
            # The API spells this key "contentTYpe"
            content_type=data.get("contentTYpe", data.get("contentType")),
            format=data.get("format"),
            operation_type=data.get("operationType"),
            presigned_url=data.get("presignedURL"),
        )


@dataclass
class Dub:
    id: str | None = None
    language: str | None = None
    voice_matching_mode: str | None = None
    merge_status: str | None = None
    medias: list[DubMedia] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Dub:
        return cls(
            id=data.get("id"),
            language=data.get("language"),
            voice_matching_mode=data.get("voiceMatchingMode"),
            merge_status=data.get("mergeStatus"),
            medias=[DubMedia.from_dict(m) for m in data.get("medias") or []],
        )


@dataclass
class Translation:
    id: str | None = None
    language: str | None = None
    dubs: list[Dub] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Translation:
        return cls(
            id=data.get("id"),
            language=data.get("language"),
            dubs=[Dub.from_dict(d) for d in data.get("dub") or []],
        )


@dataclass
class Project:
    """A snapshot of one SpeechLab dubbing project.

    WHY: The poller and orchestrator need the id and status; callers get
    the whole project back as pass-through details.

    HOW: Job fields live under the "job" key on the wire and are lifted to
    top-level attributes here. raw keeps the original dict.

    RULES:
    - status is the raw server string, "UNKNOWN" when absent
    - kind is the closed JobStatus classification of status
    """

    id: str
    status: str = UNKNOWN_STATUS
    name: str | None = None
    source_language: str | None = None
    target_language: str | None = None
    translations: list[Translation] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Project:
        job = data.get("job")
        if not isinstance(job, dict):
            job = {}
        return cls(
            id=str(data.get("id", "")),
            status=job.get("status") or UNKNOWN_STATUS,
            name=job.get("name"),
            source_language=job.get("sourceLanguage"),
            target_language=job.get("targetLanguage"),
            translations=[Translation.from_dict(t) for t in data.get("translations") or []],
            raw=data,
        )

    @property
    def kind(self) -> JobStatus:
        return JobStatus.from_raw(self.status)

    @property
    def media_count(self) -> int:
        """Number of medias on the first translation's first dub."""
        if not self.translations or not self.translations[0].dubs:
            return 0
        return len(self.translations[0].dubs[0].medias)


@dataclass
class ProjectsPage:
    """Response of GET /v1/projects."""

    results: list[Project]
    total_results: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectsPage:
        return cls(
            results=[
                Project.from_dict(p) for p in data.get("results") or [] if isinstance(p, dict)
            ],
            total_results=data.get("totalResults"),
        )


@dataclass
class DubbingResult:
    """What a successful dub_audio() call returns.

    RULES:
    - target_language is the caller's original code, never the normalized one
    - to_dict() uses the camelCase keys hosts expect
    """

    project_id: str
    status: str
    target_language: str
    sharing_link: str
    project_details: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {
            "projectId": self.project_id,
            "status": self.status,
            "targetLanguage": self.target_language,
            "sharingLink": self.sharing_link,
            "projectDetails": self.project_details,
        }
