"""
Runtime State Dependency.

Provides the shared ``CodemodeState`` to API endpoints.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from .state import CodemodeState


def get_codemode_state(request: Request) -> CodemodeState:
    state = getattr(request.app.state, "codemode", None)
    if state is None:
        raise HTTPException(status_code=503, detail="Codemode runtime is not initialized")
    return state


CodemodeStateDep = Annotated[CodemodeState, Depends(get_codemode_state)]
