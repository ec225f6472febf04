from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, TypedDict

import typer
import yaml

from .classifier import LanguageClassifier
from .config import LangIdSettings, load_config
from .model import load_model, open_byte_source

app = typer.Typer(help="Embedded language identification CLI.", no_args_is_help=True)


class ScorePayload(TypedDict):
    language: str
    probability: float


@app.command()
def detect(
    text: str = typer.Argument(..., help="Text whose language should be identified."),
    model: Path | None = typer.Option(None, "--model", "-m", help="Model archive path."),
    config: Path | None = typer.Option(None, "--config", "-c"),
    threshold: float | None = typer.Option(
        None, "--threshold", help="Override the model's probability threshold."
    ),
    default_language: str | None = typer.Option(
        None, "--default-language", help="Language reported when unsure."
    ),
    log_level: str | None = typer.Option(None, "--log-level"),
) -> None:
    """Print the most probable language, or the default language when unsure."""
    cfg = _resolve_settings(config, model, threshold, default_language, log_level)
    classifier = _build_classifier(cfg)
    typer.echo(classifier.find_language(text))


@app.command()
def scores(
    text: str = typer.Argument(..., help="Text to score."),
    model: Path | None = typer.Option(None, "--model", "-m", help="Model archive path."),
    config: Path | None = typer.Option(None, "--config", "-c"),
    log_level: str | None = typer.Option(None, "--log-level"),
) -> None:
    """Emit every known language with its probability as JSON."""
    cfg = _resolve_settings(config, model, None, None, log_level)
    classifier = _build_classifier(cfg)
    payload: List[ScorePayload] = [
        {"language": language, "probability": probability}
        for language, probability in classifier.find_languages(text)
    ]
    typer.echo(json.dumps(payload, indent=2))


@app.command()
def inspect(
    model: Path | None = typer.Option(None, "--model", "-m", help="Model archive path."),
    config: Path | None = typer.Option(None, "--config", "-c"),
    log_level: str | None = typer.Option(None, "--log-level"),
) -> None:
    """Validate a model archive and summarize its contents as JSON."""
    cfg = _resolve_settings(config, model, None, None, log_level)
    mapped = open_byte_source(_require_model_path(cfg))
    if mapped is None:
        typer.echo("Unable to read model bytes.", err=True)
        raise typer.Exit(code=1)
    with mapped:
        result = load_model(mapped.buffer)
    if result.model is None:
        typer.echo(f"Invalid model: {result.reason}", err=True)
        raise typer.Exit(code=1)
    loaded = result.model
    summary = {
        "languages": loaded.languages,
        "probability_threshold": loaded.probability_threshold,
        "context_padding": loaded.context_padding,
        "features": [spec.to_dict() for spec in loaded.features],
        "embeddings": [
            {"name": table.name, "rows": table.rows, "dim": table.dim, "combiner": table.combiner}
            for table in loaded.params.embeddings
        ],
        "layers": [
            {
                "input_dim": layer.input_dim,
                "output_dim": layer.output_dim,
                "activation": layer.activation,
            }
            for layer in loaded.params.layers
        ],
    }
    typer.echo(json.dumps(summary, indent=2))


@app.command("print-config")
def print_config(config: Path | None = typer.Option(None, "--config", "-c")) -> None:
    """Print the resolved configuration as YAML."""
    cfg = load_config(config)
    typer.echo(yaml.safe_dump(cfg.to_dict(), sort_keys=False))


def main() -> None:
    app()


def _resolve_settings(
    config: Path | None,
    model: Path | None,
    threshold: float | None,
    default_language: str | None,
    log_level: str | None,
) -> LangIdSettings:
    """Load settings from disk and apply CLI overrides when provided."""
    cfg = load_config(config)
    if model:
        cfg.model_path = str(model)
    if threshold is not None:
        cfg.probability_threshold = threshold
    if default_language is not None:
        cfg.default_language = default_language
    if log_level:
        cfg.log_level = log_level
    logging.basicConfig(level=cfg.log_level.upper())
    return cfg


def _require_model_path(cfg: LangIdSettings) -> str:
    if not cfg.model_path:
        typer.echo("A model path is required (--model or model_path in config).", err=True)
        raise typer.Exit(code=2)
    return cfg.model_path


def _build_classifier(cfg: LangIdSettings) -> LanguageClassifier:
    classifier = LanguageClassifier(_require_model_path(cfg))
    if cfg.probability_threshold is not None:
        classifier.set_probability_threshold(cfg.probability_threshold)
    classifier.set_default_language(cfg.default_language)
    return classifier
