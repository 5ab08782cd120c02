"""CLI entry point for gpt-relay."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import click

from gpt_relay import __version__


def _overrides(
    *,
    model: str | None = None,
    provider: str | None = None,
    base_url: str | None = None,
    ollama_host: str | None = None,
    timeout_ms: int | None = None,
    store_path: str | None = None,
    log_level: str | None = None,
    host: str | None = None,
    port: int | None = None,
    auth_secret: str | None = None,
) -> dict:
    """Turn CLI/env values into a config override dict. Unset values are left out."""
    overrides: dict = {}

    def put(section: str, key: str, value) -> None:
        if value is not None:
            overrides.setdefault(section, {})[key] = value

    put('provider', 'model', model)
    put('provider', 'timeout_ms', timeout_ms)
    put('store', 'path', store_path)
    put('logging', 'level', log_level)
    put('server', 'host', host)
    put('server', 'port', port)
    put('server', 'auth_secret_key', auth_secret)
    put('openai', 'base_url', base_url)
    put('ollama', 'host', ollama_host)
    if provider is not None:
        overrides['llm_provider'] = provider
    return overrides


def _load_settings(config_path: str | None, overrides: dict):
    from gpt_relay.l3_interface_adapters.gateways.yaml_config_loader import (  # noqa: PLC0415 -- deferred: yaml stack not loaded on --help
        YamlConfigLoader,
    )
    from gpt_relay.l4_frameworks_and_drivers.config import (  # noqa: PLC0415 -- deferred: not needed for --help
        InfraConfig,
        build_app_config,
    )

    try:
        raw = YamlConfigLoader().load_raw(config_path, overrides=overrides or None)
        return build_app_config(raw), InfraConfig.model_validate(raw)
    except (FileNotFoundError, ValueError) as e:
        click.echo(f'Error: {e}', err=True)
        sys.exit(1)


def _setup_logging(config) -> None:
    from gpt_relay.l4_frameworks_and_drivers.logging_setup import (  # noqa: PLC0415 -- deferred: not needed for --help
        setup_logging,
    )

    setup_logging(config.logging.level, Path(config.logging.file) if config.logging.file else None)


def _common_options(f):
    options = [
        click.option(
            '-c',
            '--config',
            'config_path',
            default=None,
            type=click.Path(exists=True),
            help='Path to YAML config file.',
        ),
        click.option('-m', '--model', default=None, envvar='OPENAI_API_MODEL', help='Completion model name.'),
        click.option(
            '--provider',
            default=None,
            envvar='LLM_PROVIDER',
            type=click.Choice(['openai', 'ollama']),
            help='Completion provider backend.',
        ),
        click.option(
            '--base-url',
            default=None,
            envvar=['API_REVERSE_PROXY', 'OPENAI_API_BASE_URL'],
            help='OpenAI-compatible API base URL.',
        ),
        click.option('--ollama-host', default=None, envvar='OLLAMA_HOST', help='Ollama server URL.'),
        click.option(
            '--timeout-ms',
            default=None,
            type=int,
            envvar='TIMEOUT_MS',
            help='Max provider silence before a request fails (ms).',
        ),
        click.option(
            '--store-path',
            default=None,
            type=click.Path(file_okay=False),
            envvar='STORE_PATH',
            help='Directory holding the message store.',
        ),
        click.option('--log-level', default=None, envvar='LOG_LEVEL', help='Log level (DEBUG, INFO, ...).'),
    ]
    for option in reversed(options):
        f = option(f)
    return f


@click.group()
@click.version_option(version=__version__)
def cli():
    """gpt-relay -- conversational completion proxy with persistent history."""


@cli.command()
@_common_options
@click.option('--host', default=None, envvar='HOST', help='Bind address.')
@click.option('--port', default=None, type=int, envvar='PORT', help='Bind port.')
@click.option('--auth-secret', default=None, envvar='AUTH_SECRET_KEY', help='Bearer token required by the API.')
def serve(config_path, model, provider, base_url, ollama_host, timeout_ms, store_path, log_level, host, port, auth_secret):
    """Run the HTTP relay."""
    config, infra = _load_settings(
        config_path,
        _overrides(
            model=model,
            provider=provider,
            base_url=base_url,
            ollama_host=ollama_host,
            timeout_ms=timeout_ms,
            store_path=store_path,
            log_level=log_level,
            host=host,
            port=port,
            auth_secret=auth_secret,
        ),
    )
    _setup_logging(config)

    from gpt_relay.l4_frameworks_and_drivers.container import (  # noqa: PLC0415 -- deferred: provider SDKs not loaded on --help
        DependencyContainer,
    )

    container = DependencyContainer(config, infra)
    _preflight_provider(container.provider, config.provider.model)
    if container.store_degraded:
        click.echo('Warning: message store unavailable; history is kept in memory only.', err=True)

    import uvicorn  # noqa: PLC0415 -- deferred: server stack only for `serve`

    from gpt_relay.l4_frameworks_and_drivers.server import (  # noqa: PLC0415 -- deferred: server stack only for `serve`
        create_app,
    )

    uvicorn.run(
        create_app(container),
        host=config.server.host,
        port=config.server.port,
        log_level=config.logging.level.lower(),
    )


@cli.command()
@click.argument('prompt')
@_common_options
@click.option('-p', '--parent', 'parent_id', default=None, help='Message id this prompt replies to.')
@click.option('--conversation', 'conversation_id', default=None, help='Conversation id to tag the turn with.')
@click.option('-s', '--system', 'system_message', default=None, help='System message.')
@click.option('--no-stream', is_flag=True, default=False, help='Wait for the full answer instead of streaming.')
def ask(
    prompt,
    config_path,
    model,
    provider,
    base_url,
    ollama_host,
    timeout_ms,
    store_path,
    log_level,
    parent_id,
    conversation_id,
    system_message,
    no_stream,
):
    """Send one PROMPT and print the answer. Use the printed message id with --parent to continue."""
    config, infra = _load_settings(
        config_path,
        _overrides(
            model=model,
            provider=provider,
            base_url=base_url,
            ollama_host=ollama_host,
            timeout_ms=timeout_ms,
            store_path=store_path,
            log_level=log_level or 'WARNING',
        ),
    )
    _setup_logging(config)

    from gpt_relay.l1_entities.message import (  # noqa: PLC0415 -- deferred: pydantic not loaded on --help
        RequestContext,
        RequestOptions,
    )
    from gpt_relay.l4_frameworks_and_drivers.container import (  # noqa: PLC0415 -- deferred: provider SDKs not loaded on --help
        DependencyContainer,
    )

    container = DependencyContainer(config, infra)
    options = RequestOptions(
        prompt=prompt,
        last_context=RequestContext(conversation_id=conversation_id, parent_message_id=parent_id),
        system_message=system_message,
    )
    if not asyncio.run(_ask(container.orchestrator, options, stream=not no_stream)):
        sys.exit(1)


async def _ask(orchestrator, options, *, stream: bool) -> bool:
    """Print one answer. Returns False when the request failed."""
    from gpt_relay.l1_entities.errors import RelayError  # noqa: PLC0415 -- deferred: matches ask()

    if not stream:
        try:
            message = await orchestrator.process(options)
        except RelayError as e:
            click.echo(f'Error: {e}', err=True)
            return False
        click.echo(message.text)
        click.echo(f'message id: {message.id}', err=True)
        return True

    answer_id = None
    async for event in orchestrator.stream(options):
        if event.error is not None:
            click.echo(f'\nError: {event.error}', err=True)
            return False
        if event.message is not None:
            answer_id = event.message.id
            click.echo(event.message.delta, nl=False)
    click.echo()
    if answer_id is not None:
        click.echo(f'message id: {answer_id}', err=True)
    return True


def _preflight_provider(provider, model: str) -> None:
    ok, err = provider.check_connectivity()
    if not ok:
        click.echo(f'Warning: provider not reachable ({err}). Chat requests will fail.', err=True)
        return
    if provider.check_models([model]):
        click.echo(f'Warning: model {model!r} is not available on the provider.', err=True)
