"""
REST API for the citizenship eligibility wizard.

Run: API_KEY=<secret> uvicorn citizenship_wizard.api:app --host 127.0.0.1 --port 8000

Endpoints:
  - evaluate: one-shot evaluation of an answer set (no auth)
  - wizard/start|answer|back: stateless wizard; the client sends its state
    snapshot with every call and gets the next snapshot back
  - save / history: saved runs per user (Bearer API key)
"""

import hmac
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from citizenship_wizard.config_loader import load_registry
from citizenship_wizard.errors import CountryNotAvailableError, RulesNotFoundError
from citizenship_wizard.logger import logger as wizard_logger
from citizenship_wizard.models import Outcome, RuleDocument, WizardState
from citizenship_wizard.registry import CountryRegistry
from citizenship_wizard.rules.matcher import evaluate_with_trace
from citizenship_wizard.run_store import RunStore
from citizenship_wizard.settings import settings
from citizenship_wizard.wizard import (
    advance,
    current_question,
    initialize,
    progress_percent,
    retreat,
    validate_answer_value,
)

logger = logging.getLogger(__name__)

API_KEY = os.environ.get("API_KEY", "change-me-in-production")
DB_PATH = os.environ.get("DB_PATH", settings.get_nested("api.db_path", "data/eligibility_runs.db"))
HISTORY_LIMIT = int(settings.get_nested("api.history_limit", 50))


# ── Error helpers ──────────────────────────────────────

class APIError(Exception):
    """Structured API exception with HTTP status code."""

    def __init__(self, status_code: int, code: str, message: str):
        self.status_code = status_code
        self.code = code
        self.message = message
        super().__init__(message)


def _error_payload(code: str, message: str) -> dict:
    return {"error": {"code": code, "message": message}}


# ── Auth ──────────────────────────────────────────────

def verify_api_key(authorization: str = Header(...)):
    """Check the Bearer token."""
    if not authorization.startswith("Bearer "):
        raise APIError(401, "UNAUTHORIZED", "Missing Bearer token")
    token = authorization[7:]
    if not hmac.compare_digest(token, API_KEY):
        raise APIError(401, "UNAUTHORIZED", "Invalid API key")


# ── Dependencies ──────────────────────────────────────

def get_registry(request: Request) -> CountryRegistry:
    return request.app.state.registry


def get_run_store(request: Request) -> RunStore:
    return request.app.state.run_store


# ── App ───────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    if API_KEY == "change-me-in-production":
        logger.warning("API_KEY is set to insecure default value")
    app.state.registry = load_registry()
    app.state.run_store = RunStore(DB_PATH)
    app.state.run_store.init_db()
    logger.info(
        "Registry loaded (%d countries, %d active), DB ready",
        len(app.state.registry), len(app.state.registry.active_countries()),
    )
    yield


app = FastAPI(title="Citizenship Eligibility API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(APIError)
async def api_error_handler(_: Request, exc: APIError):
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_payload(exc.code, exc.message),
    )


@app.exception_handler(CountryNotAvailableError)
async def country_not_available_handler(_: Request, exc: CountryNotAvailableError):
    return JSONResponse(
        status_code=400,
        content=_error_payload("COUNTRY_NOT_AVAILABLE", str(exc)),
    )


@app.exception_handler(RulesNotFoundError)
async def rules_not_found_handler(_: Request, exc: RulesNotFoundError):
    return JSONResponse(
        status_code=404,
        content=_error_payload("NOT_FOUND", str(exc)),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(_: Request, exc: RequestValidationError):
    errors = exc.errors()
    first_error = errors[0].get("msg") if errors else "Invalid request payload"
    return JSONResponse(
        status_code=400,
        content=_error_payload("BAD_REQUEST", first_error),
    )


# ── Models ────────────────────────────────────────────

class DocumentPayload(BaseModel):
    name: str
    description: str
    mandatory: bool
    tips: Optional[str] = None


class NextStepPayload(BaseModel):
    order: int
    title: str
    description: str
    link: Optional[str] = None


class OutcomePayload(BaseModel):
    status: Literal["eligible", "not_eligible", "needs_info"]
    explanation: str
    reasoning: Optional[str] = None
    documents: List[DocumentPayload] = Field(default_factory=list)
    next_steps: List[NextStepPayload] = Field(default_factory=list)
    caveats: List[str] = Field(default_factory=list)


class WizardStatePayload(BaseModel):
    country_code: str = Field(min_length=2, max_length=10)
    current_question_id: str
    current_question_index: int = 0
    answers: Dict[str, str] = Field(default_factory=dict)
    question_history: List[str] = Field(default_factory=list)
    is_complete: bool = False
    result: Optional[OutcomePayload] = None


class EvaluateRequest(BaseModel):
    country_code: str = Field(min_length=2, max_length=10)
    answers: Dict[str, str]


class SaveRunRequest(BaseModel):
    user_id: str = Field(min_length=1)
    country_code: str = Field(min_length=2, max_length=10)
    rules_version: str = Field(min_length=1, max_length=50)
    answers: Dict[str, str]
    result: OutcomePayload


class WizardStartRequest(BaseModel):
    country_code: str = Field(min_length=2, max_length=10)
    session_id: Optional[str] = None


class WizardAnswerRequest(BaseModel):
    state: WizardStatePayload
    value: str
    # Defaults to the state's current question
    question_id: Optional[str] = None
    session_id: Optional[str] = None


class WizardBackRequest(BaseModel):
    state: WizardStatePayload
    session_id: Optional[str] = None


# ── Helpers ───────────────────────────────────────────

def _wizard_response(document: RuleDocument, state: WizardState) -> dict:
    question = None if state.is_complete else current_question(document, state)
    return {
        "state": state.to_dict(),
        "question": question.to_dict() if question else None,
        "progress": progress_percent(document, state),
        "can_go_back": state.is_complete or len(state.question_history) > 1,
        "result": state.result.to_dict() if state.result else None,
        "rules_version": document.version,
    }


def _restore_state(payload: WizardStatePayload) -> WizardState:
    return WizardState.from_dict(payload.model_dump())


def _track_session(session_id: Optional[str]) -> None:
    if session_id:
        wizard_logger.set_session(session_id)
    else:
        wizard_logger.clear_session()


def _created_at_iso(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat().replace("+00:00", "Z")


# ── Endpoints ─────────────────────────────────────────

@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/api/v1/countries")
def list_countries(registry: CountryRegistry = Depends(get_registry)):
    return {"countries": [c.to_dict() for c in registry.all_countries()]}


@app.post("/api/v1/eligibility/evaluate")
def evaluate(req: EvaluateRequest, registry: CountryRegistry = Depends(get_registry)):
    """
    Evaluate eligibility for a complete answer set.

    No authentication: anyone can check eligibility.
    """
    document = registry.require_rules(req.country_code)
    result, trace = evaluate_with_trace(document, req.answers)
    return {
        "result": result.to_dict(),
        "rules_version": document.version,
        "matched_rule_id": trace.matched_rule,
    }


@app.post("/api/v1/wizard/start")
def wizard_start(req: WizardStartRequest, registry: CountryRegistry = Depends(get_registry)):
    _track_session(req.session_id)
    document = registry.require_rules(req.country_code)
    return _wizard_response(document, initialize(document))


@app.post("/api/v1/wizard/answer")
def wizard_answer(req: WizardAnswerRequest, registry: CountryRegistry = Depends(get_registry)):
    _track_session(req.session_id)
    state = _restore_state(req.state)
    document = registry.require_rules(state.country_code)

    question_id = req.question_id or state.current_question_id
    question = document.get_question(question_id)
    if question is None:
        raise APIError(400, "BAD_REQUEST", f"Unknown question '{question_id}'")

    error = validate_answer_value(question, req.value)
    if error:
        raise APIError(400, "INVALID_ANSWER", error)

    return _wizard_response(document, advance(document, state, question_id, req.value))


@app.post("/api/v1/wizard/back")
def wizard_back(req: WizardBackRequest, registry: CountryRegistry = Depends(get_registry)):
    _track_session(req.session_id)
    state = _restore_state(req.state)
    document = registry.require_rules(state.country_code)
    return _wizard_response(document, retreat(document, state))


@app.post("/api/v1/eligibility/save", dependencies=[Depends(verify_api_key)])
def save_run(
    req: SaveRunRequest,
    registry: CountryRegistry = Depends(get_registry),
    store: RunStore = Depends(get_run_store),
):
    """
    Save a completed run for a user.

    A rules version that differs from the current one is logged and saved
    anyway: the rules may have been updated since the run started.
    """
    if not registry.is_active(req.country_code):
        raise APIError(400, "COUNTRY_NOT_AVAILABLE", f"Country '{req.country_code}' is not valid")

    document = registry.get_rules(req.country_code)
    if document is not None and document.version != req.rules_version:
        logger.warning(
            "Rules version mismatch for %s: expected %s, got %s",
            req.country_code, document.version, req.rules_version,
        )

    try:
        run_id = store.save_run(
            user_id=req.user_id,
            country_code=req.country_code,
            rules_version=req.rules_version,
            answers=req.answers,
            result=Outcome.from_dict(req.result.model_dump()),
        )
    except Exception as err:
        logger.exception("Error saving eligibility run")
        raise APIError(500, "INTERNAL", "Internal server error") from err

    return {"success": True, "id": run_id}


@app.get("/api/v1/users/{user_id}/eligibility/history", dependencies=[Depends(verify_api_key)])
def get_history(
    user_id: str,
    registry: CountryRegistry = Depends(get_registry),
    store: RunStore = Depends(get_run_store),
):
    """Saved runs of a user, newest first."""
    try:
        runs = store.list_runs(user_id, limit=HISTORY_LIMIT)
    except Exception as err:
        logger.exception("Error fetching eligibility history")
        raise APIError(500, "INTERNAL", "Internal server error") from err

    history = [
        {
            "id": run.id,
            "country_code": run.country_code,
            "country_name": registry.get_country_name(run.country_code),
            "country_flag": registry.get_country_flag(run.country_code),
            "status": run.result.status.value,
            "rules_version": run.rules_version,
            "created_at": _created_at_iso(run.created_at),
        }
        for run in runs
    ]
    return {"user_id": user_id, "history": history}
