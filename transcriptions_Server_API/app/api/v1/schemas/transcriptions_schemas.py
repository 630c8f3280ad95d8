# transcriptions_schemas.py
# Description: Response and request shapes of the sync API, for the OpenAPI docs.
#
# Imports
from typing import List, Optional
#
# 3rd-party Libraries
from pydantic import BaseModel, Field
#
#######################################################################################################################


class EntryRequest(BaseModel):
    externalId: str = Field(..., description="Immutable identifier assigned by the content source",
                            pattern=r"^[a-zA-Z0-9_-]+$")
    title: Optional[str] = Field(None, description="Required when the record is created")
    composer: Optional[str] = None
    maqam: Optional[str] = None
    form: Optional[str] = None
    rhythm: Optional[str] = None
    pdfUrl: Optional[str] = Field(None, description="Absolute http(s) URL; empty string clears it")
    about: Optional[str] = None
    text: Optional[str] = None
    translation: Optional[str] = None
    analysis: Optional[str] = None


class EntryWriteResponse(BaseModel):
    status: str = Field(..., examples=["created", "updated"])
    entityId: int
    url: str


class EntryDeletedResponse(BaseModel):
    status: str = Field("deleted", examples=["deleted"])


class EntryData(BaseModel):
    entityId: int
    externalId: Optional[str] = None
    title: str
    url: str
    status: str
    composer: str = ""
    maqam: str = ""
    form: str = ""
    rhythm: str = ""
    pdfUrl: str = ""
    about: str = ""
    text: str = ""
    translation: str = ""
    analysis: str = ""
    lastSyncedAt: Optional[str] = None


class EntryGetResponse(BaseModel):
    status: str = "success"
    data: EntryData


class EntrySummary(BaseModel):
    entityId: int
    title: str
    composer: str = ""
    maqam: str = ""
    form: str = ""
    externalId: Optional[str] = None
    status: str
    url: str
    lastSyncedAt: Optional[str] = None


class EntryListResponse(BaseModel):
    status: str = "success"
    data: List[EntrySummary]


class ErrorResponse(BaseModel):
    status: str = "error"
    message: str
    errorKind: Optional[str] = None
    field: Optional[str] = None

#
# End of transcriptions_schemas.py
#######################################################################################################################
