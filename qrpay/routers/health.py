from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health", summary="Liveness probe")
async def health(request: Request):
    session = getattr(request.app.state, "session", None)
    return {
        "status": "ok",
        "version": request.app.version,
        "session_ready": session is not None,
    }
