"""
Agent Management API

Endpoints for creating, listing and destroying agents on the configured
executor, and for reading its status.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field

from core.executor import (
    AgentNotFoundError,
    AgentOptions,
    BaseExecutor,
    DuplicateAgentError,
    ExecutorError,
    ProvisionError,
    SessionStartError,
    TeardownError,
)
from core.executor_setup import get_executor
from utils.auth import verify_api_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["agents"])


# Request/Response Models
class CreateAgentRequest(BaseModel):
    """Create agent request"""

    session_id: str = Field(..., min_length=1, description="Session ID (unique key)")
    base_url: str = Field("", description="Base URL the agent talks to")
    api_key: str = Field("", description="API key for the agent")
    headers: Dict[str, str] = Field(default_factory=dict, description="Extra headers")


class AgentResponse(BaseModel):
    """Created agent"""

    session_id: str
    executor: str


class AgentsResponse(BaseModel):
    """Tracked agents"""

    agents: List[str]
    count: int


class ResourceStatusResponse(BaseModel):
    """Aggregated resource usage"""

    cpu_usage: float = 0.0
    memory_usage: float = 0.0
    disk_usage: float = 0.0


class ExecutorStatusResponse(BaseModel):
    """Executor status"""

    type: str
    is_ready: bool
    active_agents: int
    resource_status: Optional[ResourceStatusResponse] = None
    last_check: datetime


def current_executor() -> BaseExecutor:
    """Dependency returning the configured executor"""
    try:
        return get_executor()
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/executor/status", response_model=ExecutorStatusResponse)
async def get_executor_status(
    executor: BaseExecutor = Depends(current_executor),
    api_key: str = Depends(verify_api_key),
):
    """
    Get executor readiness and aggregated resource usage.
    """
    try:
        status = await executor.get_status()
    except ExecutorError as e:
        raise HTTPException(status_code=502, detail=e.message)

    return ExecutorStatusResponse(
        type=status.type.value,
        is_ready=status.is_ready,
        active_agents=status.active_agents,
        resource_status=(
            ResourceStatusResponse(**status.resource_status.to_dict())
            if status.resource_status
            else None
        ),
        last_check=status.last_check,
    )


@router.get("/agents", response_model=AgentsResponse)
async def list_agents(
    executor: BaseExecutor = Depends(current_executor),
    api_key: str = Depends(verify_api_key),
):
    """
    List session IDs of tracked agents.
    """
    agents = await executor.list_agents()
    return AgentsResponse(agents=sorted(agents), count=len(agents))


@router.post("/agents", response_model=AgentResponse, status_code=201)
async def create_agent(
    request: CreateAgentRequest,
    executor: BaseExecutor = Depends(current_executor),
    api_key: str = Depends(verify_api_key),
):
    """
    Create an agent for a session.
    """
    options = AgentOptions(
        session_id=request.session_id,
        base_url=request.base_url,
        api_key=request.api_key,
        headers=request.headers,
    )

    try:
        await executor.create_agent(options)
    except DuplicateAgentError as e:
        raise HTTPException(status_code=409, detail=e.message)
    except SessionStartError as e:
        if e.cleanup_failed:
            logger.error(f"Agent {e.session_id} may be orphaned: {e.message}")
        raise HTTPException(status_code=502, detail=e.message)
    except ProvisionError as e:
        raise HTTPException(status_code=502, detail=e.message)

    return AgentResponse(
        session_id=request.session_id,
        executor=executor.executor_type.value,
    )


@router.delete("/agents/{session_id:path}", status_code=204)
async def destroy_agent(
    session_id: str,
    executor: BaseExecutor = Depends(current_executor),
    api_key: str = Depends(verify_api_key),
):
    """
    Destroy the agent for a session.
    """
    try:
        await executor.destroy_agent(session_id)
    except AgentNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except TeardownError as e:
        raise HTTPException(status_code=502, detail=e.message)

    return Response(status_code=204)
