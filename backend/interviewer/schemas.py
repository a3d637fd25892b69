from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class EvaluationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(default="", serialization_alias="sessionId")
    prior_question: str = Field(default="", serialization_alias="priorQuestion")
    candidate_answer: str = Field(serialization_alias="candidateAnswer")


class EvaluationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    next_question: str | None = Field(
        default=None,
        validation_alias=AliasChoices("nextQuestion", "next_question"),
    )
    interview_complete: bool = Field(
        default=False,
        validation_alias=AliasChoices("interviewComplete", "isComplete", "interview_complete"),
    )
    audio_payload: str | None = Field(
        default=None,
        validation_alias=AliasChoices("audioPayload", "audio_base64", "audio_payload"),
    )
    feedback: str | None = None
    score: float | None = None

    @property
    def has_next_question(self) -> bool:
        return bool((self.next_question or "").strip())


class AdmissionRequest(BaseModel):
    passcode: str
    session_id: str | None = None


class AdmissionResponse(BaseModel):
    session_id: str
    candidate_name: str
    token: str


class SubmitAnswerRequest(BaseModel):
    text: str | None = None


class MicToggleRequest(BaseModel):
    enabled: bool
