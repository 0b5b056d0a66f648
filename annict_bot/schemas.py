import logging
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
)
from pydantic.alias_generators import to_camel


logger = logging.getLogger(__name__)


class AnnictNode(BaseModel):
    """Base for Annict GraphQL records: camelCase keys, unknown fields ignored

    A field of the wrong type degrades to None instead of rejecting the whole
    record, so the mapping fallbacks apply field by field.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("*", mode="wrap")
    @classmethod
    def drop_invalid_field(
        cls,
        value: Any,
        handler: ValidatorFunctionWrapHandler,
        info: ValidationInfo
    ) -> Any:
        try:
            return handler(value)
        except ValidationError as exc:
            logger.debug(
                "Ignoring invalid %s.%s: %s",
                cls.__name__,
                info.field_name,
                exc.errors()[:1],
            )
            return None


class WorkImage(AnnictNode):
    recommended_image_url: str | None = None
    facebook_og_image_url: str | None = None


class WorkNode(AnnictNode):
    title: str | None = None
    official_site_url: str | None = None
    image: WorkImage | None = None


class EpisodeNode(AnnictNode):
    number: int | None = None
    number_text: str | None = None
    title: str | None = None


class ChannelNode(AnnictNode):
    name: str | None = None


class ProgramNode(AnnictNode):
    """Node of viewer.programs"""
    started_at: str | None = None
    channel: ChannelNode | None = None
    episode: EpisodeNode | None = None
    work: WorkNode | None = None


class NextProgramNode(AnnictNode):
    started_at: str | None = None
    channel: ChannelNode | None = None


class LibraryEntryNode(AnnictNode):
    """Node of viewer.libraryEntries"""
    work: WorkNode | None = None
    next_episode: EpisodeNode | None = None
    next_program: NextProgramNode | None = None


class NodeConnection(AnnictNode):
    """GraphQL connection; nodes are validated one by one by the repository"""
    nodes: list[Any] | None = None


class Viewer(AnnictNode):
    programs: NodeConnection | None = None
    library_entries: NodeConnection | None = None


class ViewerResponse(AnnictNode):
    """`data` payload of both viewer queries"""
    viewer: Viewer | None = None


class WorkResponse(BaseModel):
    """Work as exposed by the preview endpoint"""
    title: str
    official_site_url: str | None = None
    image_url: str | None = None


class ProgramResponse(BaseModel):
    """Single program as exposed by the preview endpoint"""
    work: WorkResponse
    episode_number_text: str
    episode_title: str | None = None
    channel_name: str = ""
    start_time: str | None = Field(None, description="ISO8601 JST start time, null when unknown")


class ProgramsResponse(BaseModel):
    """Aggregated Annict info"""
    timestamp: str
    date: str = Field(..., description="Reference date (JST) used for the today filter")
    today_programs: list[ProgramResponse]
    library_entries: list[ProgramResponse]


class ErrorDetail(BaseModel):
    """Standard error detail"""
    code: str = Field(..., description="Error code (e.g., 'FETCH_FAILED')")
    message: str = Field(..., description="Human-readable error message")
