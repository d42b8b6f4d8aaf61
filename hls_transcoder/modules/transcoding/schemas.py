"""Pydantic schemas for the transcode pipeline."""

from pydantic import BaseModel, Field

SUCCESS_STATUS_CODE = 200
SUCCESS_MESSAGE = "MP4 successfully converted to HLS and uploaded"


class SourceReference(BaseModel):
    """Uploaded source object as delivered by the trigger (key still encoded)."""
    bucket: str = Field(..., min_length=1, description="Bucket holding the upload")
    key: str = Field(..., min_length=1, description="Raw object key from the event")

    class Config:
        frozen = True


class CompletionMessage(BaseModel):
    """Message published when a rendition set is live.

    Serialized with camelCase keys for downstream consumers.
    """
    status_code: int = Field(default=SUCCESS_STATUS_CODE, alias="statusCode")
    message: str = SUCCESS_MESSAGE
    owner_key: str = Field(..., alias="uniqueKey")
    master_playlist_url: str = Field(..., alias="masterPlaylist")

    class Config:
        populate_by_name = True

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)
