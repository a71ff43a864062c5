from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from portfolio_manager.core.exceptions import (
    RequestValidationException,
    ValidationException,
    create_exception_response,
)
from portfolio_manager.core.log import configure_logging
from portfolio_manager.middlewares.exceptions import ExceptionMiddleware

from portfolio_manager.api.portfolios.router import router as portfolios_router
from portfolio_manager.api.invitations.router import router as invitations_router
from portfolio_manager.api.posts.router import router as posts_router


configure_logging()
app = FastAPI(title="Portfolio Manager")


# Include Routers
app.include_router(invitations_router, prefix="/api/v1/portfolio/invitations")
app.include_router(portfolios_router, prefix="/api/v1/portfolio")
app.include_router(posts_router, prefix="/api/v1/posts")


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return create_exception_response(RequestValidationException(exc.errors()))


@app.exception_handler(ValidationError)
async def pydantic_validation_exception_handler(request: Request, exc: ValidationError):
    return create_exception_response(ValidationException(exc.errors()))


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ExceptionMiddleware)
