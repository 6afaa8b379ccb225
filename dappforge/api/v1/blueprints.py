"""
Blueprint compilation API endpoints.

Blueprints are compiled statelessly: the request body is the full blueprint
snapshot and nothing is persisted. Every compile error is reported as 422
with structured diagnostics.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from dappforge.errors import CompileError
from dappforge.models.blueprint import Blueprint
from dappforge.models.node_registry import get_default_registry
from dappforge.services.blueprint_compiler import compile_blueprint, validate_blueprint

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blueprints")


class ValidateResponse(BaseModel):
    valid: bool
    layers: List[List[str]]


def _compile_error(message: str, exc: CompileError) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={
            "message": message,
            "code": exc.code,
            "error": exc.message,
            "diagnostics": [d.model_dump(by_alias=True) for d in exc.diagnostics],
        },
    )


@router.post("/validate", response_model=ValidateResponse)
async def validate_blueprint_endpoint(blueprint: Blueprint):
    """
    Validate a blueprint without running any plugin.
    Returns the execution layers or diagnostics.
    """
    try:
        validated = validate_blueprint(blueprint, get_default_registry())
    except CompileError as exc:
        logger.info("Blueprint %s failed validation: %s", blueprint.id, exc.message)
        raise _compile_error("Validation failed", exc)

    return ValidateResponse(valid=True, layers=validated.plan.as_lists())


@router.post("/compile")
async def compile_blueprint_endpoint(blueprint: Blueprint) -> Dict[str, Any]:
    """
    Compile a blueprint into a project tree.
    Returns the ProjectTree JSON or diagnostics.
    """
    try:
        tree = await compile_blueprint(blueprint, get_default_registry())
    except CompileError as exc:
        raise _compile_error("Compilation failed", exc)

    return tree.model_dump(by_alias=True)
