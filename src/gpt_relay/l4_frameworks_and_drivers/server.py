"""FastAPI transport: NDJSON streaming chat, single-shot chat, session/verify/config."""

from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from gpt_relay import __version__
from gpt_relay.l1_entities.errors import ConfigError, RelayError
from gpt_relay.l1_entities.message import RequestOptions
from gpt_relay.l4_frameworks_and_drivers.container import DependencyContainer

log = logging.getLogger('relay.server')

_ALLOWED_HEADERS = [
    'Accept',
    'Accept-Language',
    'Authorization',
    'Content-Language',
    'Content-Type',
    'User-Agent',
]


class TokenBody(BaseModel):
    token: str = ''


def _resp_data(data) -> dict:
    return {'data': data, 'status': 'Success'}


def _fail(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={'data': None, 'status': 'Fail', 'message': message})


def create_app(container: DependencyContainer) -> FastAPI:
    """Build the HTTP app around an already-wired container."""
    app = FastAPI(title='gpt-relay', version=__version__)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=['*'],
        allow_methods=['*'],
        allow_headers=_ALLOWED_HEADERS,
    )

    orchestrator = container.orchestrator
    secret = container.config.server.auth_secret_key or ''

    def require_auth(authorization: str | None = Header(default=None)) -> None:
        if not secret:
            return
        scheme, _, token = (authorization or '').partition(' ')
        if scheme.lower() != 'bearer' or token != secret:
            raise HTTPException(status_code=401, detail='Unauthorized')

    @app.post('/api/chat-process', dependencies=[Depends(require_auth)])
    async def chat_process(options: RequestOptions) -> StreamingResponse:
        async def lines():
            async for event in orchestrator.stream(options):
                yield event.to_line()

        return StreamingResponse(lines(), media_type='application/x-ndjson')

    @app.post('/api/chat', dependencies=[Depends(require_auth)])
    async def chat(options: RequestOptions):
        try:
            return await orchestrator.respond(options)
        except ConfigError as e:
            return _fail(400, str(e))
        except RelayError as e:
            return _fail(500, str(e))

    @app.post('/api/session')
    async def session() -> dict:
        return _resp_data(
            {
                'auth': bool(secret),
                'model': orchestrator.model,
                'storeDegraded': container.store_degraded,
            },
        )

    @app.post('/api/verify')
    async def verify(body: TokenBody):
        if not body.token:
            return _fail(400, 'Secret key is empty')
        if body.token != secret:
            return _fail(401, 'Secret key is invalid')
        return _resp_data(None)

    @app.post('/api/config', dependencies=[Depends(require_auth)])
    async def config() -> dict:
        infra = container.infra
        base_url = infra.openai.base_url if infra.llm_provider == 'openai' else infra.ollama.host
        return _resp_data(
            {
                'provider': infra.llm_provider,
                'model': orchestrator.model,
                'baseUrl': base_url,
                'timeoutMs': container.config.provider.timeout_ms,
            },
        )

    log.info('HTTP app ready (auth=%s, model=%s)', bool(secret), orchestrator.model)
    return app
