# routers/student_progress/progress_route.py
from fastapi import APIRouter, Depends, Query
from redis.asyncio import Redis
from pymongo.database import Database
from typing import Optional

from learnhub.deps import get_db, get_redis
from learnhub.auth.dependencies import get_current_user
from learnhub.services import progress_service
from learnhub.schemas.progress_schema import ProgressReportOut, QuizScoresOut, AnalyticsOut

router = APIRouter(prefix="/api/progress", tags=["progress"])

@router.get("/report", response_model=ProgressReportOut)
async def progress_report(course_id: Optional[str] = Query(None, alias="courseId"),
                          db: Database = Depends(get_db),
                          r: Redis = Depends(get_redis),
                          user=Depends(get_current_user)):
    return await progress_service.get_progress_report(db, r, student_id=user["_id"], course_id=course_id)

@router.get("/quiz-scores", response_model=QuizScoresOut)
async def quiz_scores(course_id: Optional[str] = Query(None, alias="courseId"),
                      db: Database = Depends(get_db),
                      r: Redis = Depends(get_redis),
                      user=Depends(get_current_user)):
    return await progress_service.get_quiz_scores(db, r, student_id=user["_id"], course_id=course_id)

@router.get("/analytics", response_model=AnalyticsOut)
async def learning_analytics(db: Database = Depends(get_db),
                             r: Redis = Depends(get_redis),
                             user=Depends(get_current_user)):
    return await progress_service.get_analytics(db, r, student_id=user["_id"])
