from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import markdown
import typer
import uvicorn
import yaml
from pydantic import ValidationError

from hos_research.ai_client import AIClient, AIMessage
from hos_research.config import get_settings, validate_server_settings
from hos_research.errors import AIServiceError, AITimeoutError, ConfigError, LLMProviderError
from hos_research.financial import FinancialAnalyst
from hos_research.kv_store import KVStore
from hos_research.llm import OpenAIChatProvider
from hos_research.logging_setup import setup_logging
from hos_research.schemas import AnalyzeRequest, ReportRequest
from hos_research.web import create_app

app = typer.Typer(help="HOS research server CLI")


def _load_request(path: Path) -> Any:
    if not path.exists():
        typer.echo(f"Error: input not found: {path}")
        raise typer.Exit(code=1)
    # JSON is a subset of YAML, so one loader covers both.
    with path.open("r", encoding="utf-8") as f:
        try:
            return yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            typer.echo(f"Error: invalid input file {path}: {exc}")
            raise typer.Exit(code=1)


def _analyst() -> FinancialAnalyst:
    settings = get_settings()
    setup_logging(settings.log_level)
    try:
        provider = OpenAIChatProvider(settings)
    except ConfigError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1)
    return FinancialAnalyst(provider, settings)


@app.command("serve")
def serve(host: str = "127.0.0.1", port: int = 8000) -> None:
    settings = get_settings()
    setup_logging(settings.log_level)
    try:
        validate_server_settings(settings)
    except ConfigError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1)
    uvicorn.run(create_app(settings), host=host, port=port)


@app.command("analyze")
def analyze(input_path: Path = typer.Argument(..., help="YAML/JSON file with stock, historicalData, news")) -> None:
    analyst = _analyst()
    try:
        body = AnalyzeRequest.model_validate(_load_request(input_path))
        result = analyst.analyze(body.stock.to_model(), body.bars(), body.news_items())
    except (ValidationError, LLMProviderError) as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1)
    typer.echo(json.dumps(result.to_payload(), ensure_ascii=False, indent=2))


@app.command("report")
def report(
    input_path: Path = typer.Argument(..., help="YAML/JSON file with symbol, stock, historicalData, news"),
    html: Optional[Path] = typer.Option(default=None, help="Also render the report to this HTML file"),
) -> None:
    analyst = _analyst()
    try:
        body = ReportRequest.model_validate(_load_request(input_path))
        text = analyst.report(body.symbol, body.stock.to_model(), body.bars(), body.news_items())
    except (ValidationError, LLMProviderError) as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1)
    typer.echo(text)
    if html is not None:
        html.parent.mkdir(parents=True, exist_ok=True)
        rendered = markdown.markdown(text, extensions=["tables", "sane_lists"])
        html.write_text(rendered, encoding="utf-8")
        typer.echo(f"Wrote {html}")


@app.command("chat")
def chat(
    prompt: str,
    system: str = typer.Option("You are a helpful research assistant.", help="System message"),
    temperature: float = 0.7,
) -> None:
    settings = get_settings()
    setup_logging(settings.log_level)
    client = AIClient.from_settings(settings)
    try:
        response = client.chat([AIMessage("system", system), AIMessage("user", prompt)], temperature=temperature)
    except AITimeoutError as exc:
        typer.echo(f"Timeout: {exc}")
        raise typer.Exit(code=2)
    except AIServiceError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1)
    typer.echo(response.content)
    typer.echo(f"[model={response.model} tokens={response.tokens_used} latency={response.latency_ms}ms]")


@app.command("health")
def health() -> None:
    settings = get_settings()
    store = KVStore(settings.kv_db_path)
    try:
        store.health_check()
    except Exception as exc:
        typer.echo(f"database: failed ({exc})")
        raise typer.Exit(code=1)
    typer.echo("database: connected")


if __name__ == "__main__":
    app()
