"""API endpoints for managed pools.

Endpoints are plain ``def`` functions so FastAPI runs them in its threadpool;
each pool serializes its own operations.
"""

from typing import TypeVar

import structlog
from fastapi import APIRouter, Depends, HTTPException

from managed_pool.access import ExitKind, JoinKind
from managed_pool.api.schemas import (
    CallerBody,
    CreatePoolResponse,
    ExitBody,
    FeeBody,
    FlagBody,
    GradualUpdateBody,
    InitializeRequest,
    JoinBody,
    JoinExitResponse,
    PoolStateResponse,
    SwapBody,
    SwapResponse,
    WeightsResponse,
)
from managed_pool.models import JoinExitResult, ManagedPoolParams, SwapRequest
from managed_pool.pool import ManagedPool
from managed_pool.registry import PoolNotFoundError, PoolRegistry, get_default_registry

logger = structlog.get_logger()

router = APIRouter(prefix="/pools")

T = TypeVar("T")


def get_registry() -> PoolRegistry:
    """Dependency provider for the pool registry.

    Override this in tests to inject a registry with a fake clock:
        app.dependency_overrides[get_registry] = lambda: registry
    """
    return get_default_registry()


def _pool(pool_id: str, registry: PoolRegistry) -> ManagedPool:
    try:
        return registry.get(pool_id)
    except PoolNotFoundError:
        raise HTTPException(status_code=404, detail=f"Unknown pool {pool_id}") from None


def _require(value: T | None, field: str) -> T:
    if value is None:
        raise HTTPException(status_code=422, detail=f"'{field}' is required for this kind")
    return value


def _join_exit_response(result: JoinExitResult) -> JoinExitResponse:
    return JoinExitResponse(kind=result.kind, bpt_amount=result.bpt_amount, amounts=list(result.amounts))


@router.post("", status_code=201)
def create_pool(
    params: ManagedPoolParams,
    registry: PoolRegistry = Depends(get_registry),
) -> CreatePoolResponse:
    pool_id = registry.create(params)
    logger.info("pool_created_via_api", pool_id=pool_id, owner=params.owner)
    return CreatePoolResponse(pool_id=pool_id)


@router.get("/{pool_id}")
def get_pool(pool_id: str, registry: PoolRegistry = Depends(get_registry)) -> PoolStateResponse:
    pool = _pool(pool_id, registry)
    return PoolStateResponse(
        pool_id=pool_id,
        tokens=list(pool.tokens),
        owner=pool.owner,
        scaling_factors=pool.get_scaling_factors(),
        normalized_weights=pool.get_normalized_weights(),
        swap_enabled=pool.get_swap_enabled(),
        must_allowlist_lps=pool.get_must_allowlist_lps(),
        swap_fee_percentage=pool.get_swap_fee_percentage(),
        management_swap_fee_percentage=pool.get_management_swap_fee_percentage(),
        total_supply=pool.total_supply,
        initialized=pool.is_initialized,
    )


@router.get("/{pool_id}/weights")
def get_weights(pool_id: str, registry: PoolRegistry = Depends(get_registry)) -> WeightsResponse:
    pool = _pool(pool_id, registry)
    params = pool.get_gradual_weight_update_params()
    return WeightsResponse(
        normalized_weights=pool.get_normalized_weights(),
        start_time=params.start_time,
        end_time=params.end_time,
        end_weights=list(params.end_weights),
    )


@router.post("/{pool_id}/initialize")
def initialize(
    pool_id: str,
    body: InitializeRequest,
    registry: PoolRegistry = Depends(get_registry),
) -> JoinExitResponse:
    result = _pool(pool_id, registry).initialize(body.sender, body.amounts_in)
    return _join_exit_response(result)


@router.post("/{pool_id}/swap")
def swap(pool_id: str, body: SwapBody, registry: PoolRegistry = Depends(get_registry)) -> SwapResponse:
    request = SwapRequest(
        kind=body.kind,
        token_in=body.token_in,
        token_out=body.token_out,
        amount=body.amount,
        limit=body.limit,
    )
    result = _pool(pool_id, registry).on_swap(body.caller, request, body.balances)
    return SwapResponse(
        amount_in=result.amount_in,
        amount_out=result.amount_out,
        swap_fee_amount=result.swap_fee_amount,
        management_fee_amount=result.management_fee_amount,
        protocol_fee_bpt=result.protocol_fee_bpt,
    )


@router.post("/{pool_id}/join")
def join(pool_id: str, body: JoinBody, registry: PoolRegistry = Depends(get_registry)) -> JoinExitResponse:
    pool = _pool(pool_id, registry)
    if body.kind is JoinKind.INIT:
        result = pool.initialize(body.sender, _require(body.amounts_in, "amountsIn"))
    elif body.kind is JoinKind.ALL_TOKENS_IN_FOR_EXACT_BPT_OUT:
        result = pool.join_all_given_out(
            body.sender, body.balances, _require(body.bpt_out, "bptOut"), body.max_amounts_in
        )
    elif body.kind is JoinKind.EXACT_TOKENS_IN_FOR_BPT_OUT:
        result = pool.join_given_in(
            body.sender, body.balances, _require(body.amounts_in, "amountsIn"), body.min_bpt_out
        )
    else:
        result = pool.join_given_out(
            body.sender,
            body.balances,
            _require(body.bpt_out, "bptOut"),
            _require(body.token, "token"),
            body.max_amount_in,
        )
    return _join_exit_response(result)


@router.post("/{pool_id}/exit")
def exit_pool(pool_id: str, body: ExitBody, registry: PoolRegistry = Depends(get_registry)) -> JoinExitResponse:
    pool = _pool(pool_id, registry)
    if body.kind is ExitKind.EXACT_BPT_IN_FOR_TOKENS_OUT:
        result = pool.multi_exit_given_in(
            body.sender, body.balances, _require(body.bpt_in, "bptIn"), body.min_amounts_out
        )
    elif body.kind is ExitKind.EXACT_BPT_IN_FOR_ONE_TOKEN_OUT:
        result = pool.single_exit_given_in(
            body.sender,
            body.balances,
            _require(body.bpt_in, "bptIn"),
            _require(body.token, "token"),
            body.min_amount_out,
        )
    else:
        result = pool.exit_given_out(
            body.sender, body.balances, _require(body.amounts_out, "amountsOut"), body.max_bpt_in
        )
    return _join_exit_response(result)


@router.post("/{pool_id}/weights/gradual-update")
def update_weights_gradually(
    pool_id: str,
    body: GradualUpdateBody,
    registry: PoolRegistry = Depends(get_registry),
) -> WeightsResponse:
    pool = _pool(pool_id, registry)
    params = pool.update_weights_gradually(body.caller, body.start_time, body.end_time, body.end_weights)
    return WeightsResponse(
        normalized_weights=pool.get_normalized_weights(),
        start_time=params.start_time,
        end_time=params.end_time,
        end_weights=list(params.end_weights),
    )


@router.post("/{pool_id}/swap-enabled", status_code=204)
def set_swap_enabled(pool_id: str, body: FlagBody, registry: PoolRegistry = Depends(get_registry)) -> None:
    _pool(pool_id, registry).set_swap_enabled(body.caller, body.enabled)


@router.post("/{pool_id}/must-allowlist-lps", status_code=204)
def set_must_allowlist_lps(
    pool_id: str,
    body: FlagBody,
    registry: PoolRegistry = Depends(get_registry),
) -> None:
    _pool(pool_id, registry).set_must_allowlist_lps(body.caller, body.enabled)


@router.post("/{pool_id}/allowlist/{member}", status_code=204)
def add_allowed_address(
    pool_id: str,
    member: str,
    body: CallerBody,
    registry: PoolRegistry = Depends(get_registry),
) -> None:
    _pool(pool_id, registry).add_allowed_address(body.caller, member)


@router.delete("/{pool_id}/allowlist/{member}", status_code=204)
def remove_allowed_address(
    pool_id: str,
    member: str,
    caller: str,
    registry: PoolRegistry = Depends(get_registry),
) -> None:
    _pool(pool_id, registry).remove_allowed_address(caller, member)


@router.post("/{pool_id}/management-fee", status_code=204)
def set_management_swap_fee_percentage(
    pool_id: str,
    body: FeeBody,
    registry: PoolRegistry = Depends(get_registry),
) -> None:
    _pool(pool_id, registry).set_management_swap_fee_percentage(body.caller, body.percentage)
