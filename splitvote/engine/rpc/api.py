from fastapi import FastAPI, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel
from typing import Optional, List
from ...protocol.types.common import ValidationError
from ...protocol.types.delegation import Checkpoint, Delegation
from ..core.ledger import TokenLedger
import logging

logger = logging.getLogger(__name__)

app = FastAPI(title="splitvote Voting Power RPC")

ledger: Optional[TokenLedger] = None


class VotesResponse(BaseModel):
    delegatee: str
    votes: str
    time: Optional[int] = None


class SupplyResponse(BaseModel):
    total_supply: str
    time: Optional[int] = None


class DelegationsResponse(BaseModel):
    account: str
    delegations: List[Delegation]


def _require_ledger() -> TokenLedger:
    if not ledger:
        raise HTTPException(status_code=503, detail="Node not initialized")
    return ledger


def _bad_request(e: ValidationError):
    logger.warning(f"Rejected query: {e}")
    raise HTTPException(status_code=400, detail=str(e))


@app.get("/status")
async def get_status():
    node = _require_ledger()
    return {
        "network": node.config.network_id,
        "clock": node.query.clock(),
        "clock_mode": node.query.clock_mode(),
        "denominator": node.config.denominator,
        "max_partial_delegations": node.config.max_partial_delegations,
        "total_supply": str(node.query.current_total_supply()),
        "delegatees": len(node.query.delegatees()),
    }


@app.get("/votes/{delegatee}", response_model=VotesResponse)
async def get_votes(delegatee: str):
    node = _require_ledger()
    try:
        votes = node.query.current_votes(delegatee)
    except ValidationError as e:
        _bad_request(e)
    return VotesResponse(delegatee=delegatee, votes=str(votes))


@app.get("/votes/{delegatee}/at/{time}", response_model=VotesResponse)
async def get_past_votes(delegatee: str, time: int):
    node = _require_ledger()
    try:
        votes = node.query.votes_at(delegatee, time)
    except ValidationError as e:
        _bad_request(e)
    return VotesResponse(delegatee=delegatee, votes=str(votes), time=time)


@app.get("/votes/{delegatee}/checkpoints", response_model=List[Checkpoint])
async def get_checkpoints(delegatee: str):
    node = _require_ledger()
    try:
        trace = node.query.checkpoints(delegatee)
    except ValidationError as e:
        _bad_request(e)
    if not trace:
        raise HTTPException(status_code=404, detail="No checkpoints for delegatee")
    return trace


@app.get("/total_supply", response_model=SupplyResponse)
async def get_total_supply():
    node = _require_ledger()
    return SupplyResponse(total_supply=str(node.query.current_total_supply()))


@app.get("/total_supply/at/{time}", response_model=SupplyResponse)
async def get_past_total_supply(time: int):
    node = _require_ledger()
    try:
        supply = node.query.total_supply_at(time)
    except ValidationError as e:
        _bad_request(e)
    return SupplyResponse(total_supply=str(supply), time=time)


@app.get("/delegations/{account}", response_model=DelegationsResponse)
async def get_delegations(account: str):
    node = _require_ledger()
    try:
        delegations = node.query.current_delegations(account)
    except ValidationError as e:
        _bad_request(e)
    return DelegationsResponse(account=account, delegations=delegations)


@app.get("/balance/{address}")
async def get_balance(address: str):
    node = _require_ledger()
    try:
        balance = node.balance_of(address)
    except ValidationError as e:
        _bad_request(e)
    return {
        "address": address,
        "balance": str(balance),
    }


@app.get("/metrics")
async def get_metrics():
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus text format.
    """
    from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
    from ..observability.metrics import metrics_registry, update_metrics

    node = _require_ledger()
    update_metrics(node.engine)
    return Response(content=generate_latest(metrics_registry), media_type=CONTENT_TYPE_LATEST)
