from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field

Tier = Literal["Hot", "Warm", "Nurture"]

class SubmitResponse(BaseModel):
    status: Literal["success", "error"] = "success"
    sessionId: str
    lead_score: int
    lead_tier: Tier
    auto_notes: str = ""
    breakdown: Dict[str, int] = Field(default_factory=dict)
    confirmUrl: str
    resultsUrl: str

class ConfirmResponse(BaseModel):
    status: str
    notified: bool = False
    redirectUrl: Optional[str] = None
    continueUrl: str
    showContinue: bool = False
    delayMs: int = 0

class CtaModel(BaseModel):
    text: str
    url: str
    track: str = ""

class TierCopy(BaseModel):
    title: str
    subtitle: str
    cta: Optional[CtaModel] = None
    accent: str

class ResultsResponse(BaseModel):
    firstName: str
    cameraCount: Optional[int] = None
    nvrChannel: Optional[int] = None
    locations: List[str] = Field(default_factory=list)
    tier: Tier
    tierCopy: TierCopy
