from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from k8s_app.app.constants import LIVENESS_MESSAGE

root_router = APIRouter(tags=["Health"])


@root_router.get(
    "/",
    summary="Liveness probe",
    description="Returns 200 while the process is running. Does not check the database.",
    response_class=PlainTextResponse,
    responses={200: {"description": "Service is alive."}},
)
async def root() -> str:
    return LIVENESS_MESSAGE
