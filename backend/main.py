import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.core import config
from backend.core.errors import InternalError, ValidationFailed, error_body
from backend.database import Base, engine, ensure_interview_schema, ensure_resource_schema
from backend.models import interview, resource, user  # noqa: F401
from backend.routes import auth_routes, interview_routes, resource_routes, user_routes

logging.basicConfig(
    format='[%(asctime)s] %(name)s - %(levelname)s - %(message)s',
    level=config.LOG_LEVEL,
)

logger = logging.getLogger(__name__)

app = FastAPI(title='Mock Interview Scheduler API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(bind=engine)
        ensure_interview_schema()
        ensure_resource_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


def validation_errors(exc: RequestValidationError) -> list[dict]:
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get('loc', ()) if part not in ('body', 'query', 'path', 'header')]
        message = error.get('msg', 'Invalid value')
        if message.startswith('Value error, '):
            message = message[len('Value error, '):]
        errors.append({'field': '.'.join(location) or None, 'message': message})
    return errors


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=error_body(exc), headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationFailed(errors=validation_errors(exc))
    return JSONResponse(status_code=error.status_code, content=error_body(error))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception('Unhandled error on %s %s', request.method, request.url.path)
    error = InternalError(str(exc))
    return JSONResponse(status_code=error.status_code, content=error_body(error))


@app.get('/')
def root():
    return {'status': 'Mock Interview API Running'}


app.include_router(auth_routes.router, prefix='/api/auth')
app.include_router(user_routes.router, prefix='/api/users')
app.include_router(interview_routes.router, prefix='/api/interviews')
app.include_router(resource_routes.router, prefix='/api/resources')
