from fastapi import FastAPI
from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from leadform.api.routes import router
from leadform.api.admin_routes import router as admin_router
from leadform.observability.logging import log
from leadform.settings import settings

app = FastAPI(title="Lead Intake Form API")

origins = [x.strip() for x in settings.CORS_ORIGINS.split(",") if x.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)
app.include_router(admin_router)


@app.get("/")
def root():
    return {
        "status": "ok",
        "message": "Lead intake API is running. Use POST /api/submit, POST /api/confirm and GET /api/results.",
    }


@app.get("/health")
def health():
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# No failure may strand the user: unexpected errors still answer 200 with a
# way forward to the results page.
# ---------------------------------------------------------------------------
@app.exception_handler(Exception)
async def universal_exception_handler(request: Request, exc: Exception):
    log(event="unhandled_exception", path=request.url.path, errorType=type(exc).__name__, error=str(exc)[:300])
    return JSONResponse(
        status_code=200,
        content={
            "status": "error",
            "message": "Something went wrong, but you can still continue to your results.",
            "continueUrl": settings.RESULTS_URL,
            "showContinue": True,
        },
    )
