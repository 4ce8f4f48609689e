from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from .routes import router
from .core import kafka_startup, redis_startup, init_metrics, shutdown_connections
from .errors import SocialGraphError, ErrorCategory, InvalidLimitError, InvalidRequestError
import logging
from pythonjsonlogger import jsonlogger

# setup structured logging
logger = logging.getLogger('socialgraph')
handler = logging.StreamHandler()
formatter = jsonlogger.JsonFormatter('%(asctime)s %(levelname)s %(name)s %(message)s')
handler.setFormatter(formatter)
logger.addHandler(handler)
logger.setLevel(logging.INFO)

app = FastAPI(title="Social Graph API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=['*'],
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

app.include_router(router, prefix="/api")

@app.exception_handler(SocialGraphError)
async def social_graph_error_handler(request: Request, exc: SocialGraphError):
    level = logging.ERROR if exc.category == ErrorCategory.TRANSIENT else logging.INFO
    logger.log(level, {'msg': 'social_graph_error', 'code': exc.code.value, 'path': request.url.path})
    return JSONResponse(status_code=exc.status_code, content={'error': exc.to_dict()})

@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    bad_limit = next((e for e in errors if tuple(e['loc']) == ('query', 'limit')), None)
    if bad_limit is not None:
        error = InvalidLimitError(limit=repr(bad_limit.get('input')))
    else:
        error = InvalidRequestError(fields=['.'.join(str(part) for part in e['loc']) for e in errors])
    return await social_graph_error_handler(request, error)

@app.get('/healthz')
async def healthz():
    return {'status': 'ok'}

@app.middleware('http')
async def log_requests(request: Request, call_next):
    logger.info({'msg':'request_start','method':request.method,'path':request.url.path})
    response = await call_next(request)
    logger.info({'msg':'request_end','status': response.status_code})
    return response

@app.on_event("startup")
async def startup():
    # Best-effort init, don't block app from starting if a dependency fails
    try:
        await redis_startup()
    except Exception as e:
        logger.warning({'msg': 'redis_start_failed', 'error': str(e)})
    try:
        await kafka_startup()
    except Exception as e:
        logger.warning({'msg': 'kafka_start_failed', 'error': str(e)})
    try:
        init_metrics()
    except Exception as e:
        logger.warning({'msg': 'metrics_init_failed', 'error': str(e)})

@app.on_event("shutdown")
async def shutdown():
    await shutdown_connections()
