from fastapi import APIRouter, Depends

from app.models import TEST_CONFIG
from app.services.sessions import ScoreBoard, get_scoreboard


router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("")
def dashboard(scoreboard: ScoreBoard = Depends(get_scoreboard)):
    subjects = []
    for subject, cfg in TEST_CONFIG.items():
        score = scoreboard.get(subject)
        subjects.append({
            "subject": subject.value,
            "total_questions": cfg.total_questions,
            "time_limit": cfg.time_limit,
            "passing_score": cfg.passing_score,
            "score": score.model_dump(mode="json") if score else None,
        })
    return {"scale": {"min": 100, "max": 200}, "subjects": subjects}


@router.get("/scores")
def list_scores(scoreboard: ScoreBoard = Depends(get_scoreboard)):
    return [s.model_dump(mode="json") for s in scoreboard.all()]
