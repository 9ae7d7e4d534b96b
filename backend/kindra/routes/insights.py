"""
Insights API Routes
Aggregate, per-connection and cycle-phase correlation insights, computed
from posted records or loaded from the Kindra database.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from kindra.models.schemas import Connection, CycleCorrelationReport, Insight
from kindra.services.connection_insights_service import connection_insights_service
from kindra.services.cycle_insight_service import cycle_insight_service
from kindra.services.cycle_phase_service import utcnow
from kindra.services.db_service import db_service
from kindra.services.record_loader import load_connections, load_cycles, load_moments
from kindra.services.relationship_analytics_service import relationship_analytics_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/insights", tags=["insights"])


# ============================================================================
# REQUEST / RESPONSE MODELS
# ============================================================================

class AnalyzeRequest(BaseModel):
    moments: List[Dict[str, Any]] = Field(default_factory=list)
    connections: List[Dict[str, Any]] = Field(default_factory=list)
    cycles: Optional[List[Dict[str, Any]]] = None
    now: Optional[datetime] = Field(default=None, description="Reference time, defaults to the current UTC time")


class ConnectionAnalyzeRequest(BaseModel):
    connection: Connection
    moments: List[Dict[str, Any]] = Field(default_factory=list)
    cycles: Optional[List[Dict[str, Any]]] = None
    now: Optional[datetime] = None


class CycleCorrelationRequest(BaseModel):
    moments: List[Dict[str, Any]] = Field(default_factory=list)
    cycles: List[Dict[str, Any]] = Field(default_factory=list)
    now: Optional[datetime] = None


class InsightsResponse(BaseModel):
    insights: List[Insight]


def _resolve_now(now: Optional[datetime]) -> datetime:
    if now is None:
        return utcnow()
    if now.tzinfo is not None:
        return now.astimezone(timezone.utc).replace(tzinfo=None)
    return now


def _require_database():
    if not db_service.is_configured:
        raise HTTPException(status_code=503, detail="Database is not configured")


# ============================================================================
# ANALYSIS OF POSTED RECORDS
# ============================================================================

@router.post("/analyze", response_model=InsightsResponse)
async def analyze(request: AnalyzeRequest):
    """Cross-connection insights for the posted moments, connections and cycles"""
    try:
        moments = load_moments(request.moments)
        connections = load_connections(request.connections)
        cycles = load_cycles(request.cycles) if request.cycles else None

        logger.info(f"📊 Analyzing {len(moments)} moments across {len(connections)} connections")
        insights = relationship_analytics_service.generate_analytics_insights(
            moments, connections, cycles, _resolve_now(request.now)
        )
        return InsightsResponse(insights=insights)
    except Exception as e:
        logger.error(f"❌ Error generating analytics insights: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/connections/analyze", response_model=InsightsResponse)
async def analyze_connection(request: ConnectionAnalyzeRequest):
    """Insights for a single connection"""
    try:
        moments = load_moments(request.moments)
        cycles = load_cycles(request.cycles or [])

        logger.info(f"📊 Analyzing connection {request.connection.id} ({len(moments)} moments)")
        insights = connection_insights_service.generate_connection_insights(
            request.connection, moments, cycles, _resolve_now(request.now)
        )
        return InsightsResponse(insights=insights)
    except Exception as e:
        logger.error(f"❌ Error generating connection insights: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/cycle-correlation", response_model=CycleCorrelationReport)
async def cycle_correlation(request: CycleCorrelationRequest):
    """Full cycle-phase correlation report: ranked phases, insight, timing"""
    try:
        moments = load_moments(request.moments)
        cycles = load_cycles(request.cycles)
        return cycle_insight_service.analyze(moments, cycles, _resolve_now(request.now))
    except Exception as e:
        logger.error(f"❌ Error analyzing cycle correlation: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


# ============================================================================
# ANALYSIS OF STORED RECORDS
# ============================================================================

@router.get("/users/{user_id}", response_model=InsightsResponse)
async def get_user_insights(user_id: int):
    """Cross-connection insights from the user's stored records"""
    _require_database()
    try:
        logger.info(f"📊 Loading records for user {user_id}")
        moments = load_moments(db_service.get_moments(user_id))
        connections = load_connections(db_service.get_connections(user_id))
        cycles = load_cycles(db_service.get_menstrual_cycles(user_id))

        insights = relationship_analytics_service.generate_analytics_insights(
            moments, connections, cycles, utcnow()
        )
        return InsightsResponse(insights=insights)
    except Exception as e:
        logger.error(f"❌ Error getting insights for user {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/users/{user_id}/connections/{connection_id}", response_model=InsightsResponse)
async def get_connection_insights(user_id: int, connection_id: int):
    """Insights for one stored connection"""
    _require_database()
    try:
        record = db_service.get_connection_record(user_id, connection_id)
    except Exception as e:
        logger.error(f"❌ Error loading connection {connection_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

    if record is None:
        raise HTTPException(status_code=404, detail=f"Connection {connection_id} not found")

    try:
        connection = Connection.model_validate(record)
        moments = load_moments(db_service.get_moments(user_id, connection_id))
        cycles = load_cycles(db_service.get_menstrual_cycles(user_id))

        insights = connection_insights_service.generate_connection_insights(
            connection, moments, cycles, utcnow()
        )
        return InsightsResponse(insights=insights)
    except Exception as e:
        logger.error(f"❌ Error getting insights for connection {connection_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))
