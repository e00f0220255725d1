"""
FastAPI surface for the judge portal.

Endpoints:
    POST   /api/matches/{match_id}/scores              Submit a judge scorecard
    GET    /api/matches/{match_id}/scores              Judge count, finalized flag, result
    GET    /api/matches/{match_id}/scores/detail       Same, plus every judge's card
    DELETE /api/matches/{match_id}/scores/{judge_id}   Delete a card so the judge can resubmit
    POST   /api/matches/{match_id}/report              Retry a failed report to the bracket host
    POST   /api/matches/{match_id}/reopen              Reopen a match for re-scoring

Bracket host passthrough, as the judge client calls it:
    GET    /api/tournaments                                    List tournaments
    GET    /api/tournaments/{tournament_id}                    Tournament with participants and matches
    GET    /api/tournaments/{tournament_id}/participants       Participants
    GET    /api/tournaments/{tournament_id}/matches            Matches
    GET    /api/tournaments/{tournament_id}/matches/{match_id} One match
    PUT    /api/tournaments/{tournament_id}/matches/{match_id} Set a winner by hand
    POST   /api/tournaments/{tournament_id}/matches/{match_id}/reopen
                                                               Reopen, keeping local scoring in sync

    GET    /health                                     Health check
"""

from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from .controller import MatchController
from .exceptions import (
    AlreadyFinalizedError,
    JudgePortalError,
    ScorecardNotFoundError,
    StoreError,
    TiedMatchError,
    UpstreamReportError,
    ValidationError,
)
from .logging_config import get_logger
from .models import (
    KnockoutDeclaration,
    MatchResult,
    MatchStatus,
    PointSplit,
    Scorecard,
)
from .reporters.challonge_reporter import ChallongeReporter

logger = get_logger("server")

ERROR_STATUS: dict[type[JudgePortalError], int] = {
    ValidationError: 422,
    AlreadyFinalizedError: 409,
    TiedMatchError: 409,
    ScorecardNotFoundError: 404,
    UpstreamReportError: 502,
    StoreError: 503,
}


# ======================================================================
# Request / response models
# ======================================================================


class ScoreSubmission(BaseModel):
    """Body of a scorecard submission, as the judge client sends it."""

    model_config = ConfigDict(populate_by_name=True)

    judge_id: str = Field(alias="judgeId")
    tournament_id: int | str = Field(alias="tournamentId")
    competitor_a_id: int | str = Field(alias="competitorAId")
    competitor_b_id: int | str = Field(alias="competitorBId")
    scores: dict[str, int] | None = None
    is_ko: bool = Field(default=False, alias="isKO")
    ko_winner_id: int | str | None = Field(default=None, alias="koWinnerId")

    def to_scorecard(self) -> Scorecard:
        if self.is_ko:
            if self.ko_winner_id is None or self.ko_winner_id == "":
                raise ValidationError("KO declaration must name a winner")
            if self.scores is not None:
                raise ValidationError("KO declaration cannot carry a point split")
            return KnockoutDeclaration(winner_id=str(self.ko_winner_id))
        if self.scores is None:
            raise ValidationError("scores are required unless the scorecard declares a KO")
        return PointSplit(shares_a=dict(self.scores))


class ReopenRequest(BaseModel):
    notify_host: bool = Field(default=True, alias="notifyHost")
    keep_scorecards: bool = Field(default=False, alias="keepScorecards")

    model_config = ConfigDict(populate_by_name=True)


class HostMatchUpdate(BaseModel):
    """Manual result for a match, in Challonge's own field names."""

    winner_id: int | str
    scores_csv: str | None = None


def result_payload(result: MatchResult | None) -> dict[str, Any] | None:
    if result is None:
        return None
    payload: dict[str, Any] = {
        "winnerId": result.winner_id,
        "winMethod": result.win_method,
        "scoreA": result.score_a,
        "scoreB": result.score_b,
        "scoresCsv": result.score_string,
    }
    if result.ko_votes is not None:
        payload["koVotes"] = result.ko_votes
    return payload


def status_payload(status: MatchStatus) -> dict[str, Any]:
    return {
        "matchId": status.match_id,
        "judgeCount": status.judge_count,
        "finalized": status.finalized,
        "state": status.state.value,
        "result": result_payload(status.result),
    }


# ======================================================================
# App factory
# ======================================================================


def create_app(controller: MatchController, host_client: ChallongeReporter | None = None) -> FastAPI:
    """Build the HTTP app around a wired controller."""
    app = FastAPI(title="Judge Portal")
    app.state.controller = controller
    app.state.host_client = host_client

    @app.exception_handler(JudgePortalError)
    async def judge_portal_error_handler(request: Request, exc: JudgePortalError) -> JSONResponse:
        status_code = next((code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 500)
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        else:
            logger.info(f"{request.method} {request.url.path} refused ({exc.error_code}): {exc}")
        return JSONResponse(status_code=status_code, content={"error": exc.error_code, "detail": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"error": ValidationError.error_code, "detail": str(exc.errors())},
        )

    @app.post("/api/matches/{match_id}/scores")
    def submit_scores(match_id: str, req: ScoreSubmission) -> dict[str, Any]:
        """Record a judge's scorecard; the third one finalizes the match."""
        outcome = controller.submit_scorecard(
            match_id=match_id,
            judge_id=req.judge_id,
            tournament_id=str(req.tournament_id),
            competitor_a_id=str(req.competitor_a_id),
            competitor_b_id=str(req.competitor_b_id),
            scorecard=req.to_scorecard(),
        )
        response: dict[str, Any] = {
            "success": True,
            "judgeCount": outcome.judge_count,
            "finalized": outcome.finalized,
        }
        if outcome.finalized:
            response["result"] = result_payload(outcome.result)
        else:
            response["message"] = f"Waiting for {outcome.waiting_for} more judge(s)"
        return response

    @app.get("/api/matches/{match_id}/scores")
    def get_scores(match_id: str) -> dict[str, Any]:
        return status_payload(controller.get_status(match_id))

    @app.get("/api/matches/{match_id}/scores/detail")
    def get_scores_detail(match_id: str) -> dict[str, Any]:
        """Status plus each judge's card, keyed by judge id."""
        detail = controller.get_status_detail(match_id)
        judges: dict[str, Any] = {}
        for judge in detail.judges:
            judges[judge.judge_id] = {
                "isKO": judge.method == "ko",
                "koWinnerId": judge.ko_winner_id,
                "scores": judge.shares_a or None,
                "scoresB": judge.shares_b or None,
                "totalA": judge.total_a,
                "totalB": judge.total_b,
                "submittedAt": judge.submitted_at,
            }
        payload = status_payload(detail.status)
        payload.update(
            {
                "tournamentId": detail.tournament_id,
                "competitorAId": detail.competitor_a_id,
                "competitorBId": detail.competitor_b_id,
                "judges": judges,
            }
        )
        return payload

    @app.delete("/api/matches/{match_id}/scores/{judge_id}")
    def delete_score(match_id: str, judge_id: str) -> dict[str, Any]:
        status = controller.delete_scorecard(match_id, judge_id)
        return {
            "success": True,
            "judgeCount": status.judge_count,
            "message": "Score deleted, you can resubmit",
        }

    @app.post("/api/matches/{match_id}/report")
    def retry_report(match_id: str) -> dict[str, Any]:
        outcome = controller.retry_report(match_id)
        return {
            "success": True,
            "judgeCount": outcome.judge_count,
            "finalized": outcome.finalized,
            "result": result_payload(outcome.result),
        }

    @app.post("/api/matches/{match_id}/reopen")
    def reopen(match_id: str, req: ReopenRequest | None = None) -> dict[str, Any]:
        req = req or ReopenRequest()
        status = controller.reopen_match(
            match_id, notify_host=req.notify_host, keep_scorecards=req.keep_scorecards
        )
        return {"success": True, **status_payload(status)}

    def host() -> ChallongeReporter:
        if host_client is None:
            raise HTTPException(status_code=503, detail="Bracket host not configured")
        return host_client

    @app.get("/api/tournaments")
    def list_tournaments() -> list[dict[str, Any]]:
        return host().list_tournaments()

    @app.get("/api/tournaments/{tournament_id}")
    def get_tournament(tournament_id: str) -> dict[str, Any]:
        return host().get_tournament(tournament_id)

    @app.get("/api/tournaments/{tournament_id}/participants")
    def get_participants(tournament_id: str) -> list[dict[str, Any]]:
        return host().get_participants(tournament_id)

    @app.get("/api/tournaments/{tournament_id}/matches")
    def get_matches(tournament_id: str) -> list[dict[str, Any]]:
        return host().get_matches(tournament_id)

    @app.get("/api/tournaments/{tournament_id}/matches/{match_id}")
    def get_match(tournament_id: str, match_id: str) -> dict[str, Any]:
        return host().get_match(tournament_id, match_id)

    @app.put("/api/tournaments/{tournament_id}/matches/{match_id}")
    def update_match(tournament_id: str, match_id: str, req: HostMatchUpdate) -> dict[str, Any]:
        """Set a winner by hand; judged matches are refused while scoring is open."""
        client = host()
        status = controller.get_status(match_id)
        if status.judge_count and not status.finalized:
            raise HTTPException(
                status_code=409,
                detail=f"Match {match_id} is being judged ({status.judge_count} scorecard(s) in)",
            )
        logger.warning(f"Manual result for match {match_id}: winner={req.winner_id}, scores={req.scores_csv}")
        return {"match": client.update_match(tournament_id, match_id, req.winner_id, req.scores_csv)}

    @app.post("/api/tournaments/{tournament_id}/matches/{match_id}/reopen")
    def reopen_tournament_match(tournament_id: str, match_id: str) -> dict[str, Any]:
        status = controller.reopen_match(match_id, tournament_id=tournament_id)
        return {"success": True, **status_payload(status)}

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "bracketHost": "configured" if host_client is not None else "not configured",
            "pointBudget": controller.config.point_budget,
            "criteria": {c.criterion_id: c.points for c in controller.config.criteria},
        }

    return app
