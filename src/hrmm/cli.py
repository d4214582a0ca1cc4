"""Command-line interface for hrmm."""

import functools
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click
import yaml
from pydantic import ValidationError

from hrmm import __version__
from hrmm.orchestration import BatchFetcher, FetchResult
from hrmm.serialization import group_by_family, serialize_json, serialize_text
from hrmm.utils.config_validator import (
    ConfigurationError,
    HrmmConfig,
    format_validation_errors,
    load_config,
    split_list_values,
    validate_config_file,
)

# Configure logging; stdout is reserved for metric output
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

EXAMPLE_CONFIG = {
    "urls": ["http://localhost:9090/metrics"],
    "metrics": ["http_requests_total", "http_request_duration_seconds"],
    "labels": ["method=post"],
    "json_output": False,
    "timeout_s": 10.0,
    "max_workers": 4,
}


def fetch_options(command):
    """Attach the options shared by every command that scrapes endpoints."""
    options = [
        click.option(
            "--url", "-u", "urls", multiple=True,
            help="URL of a prometheus metrics endpoint (repeatable, comma-separated allowed)",
        ),
        click.option(
            "--metric", "-m", "metrics", multiple=True,
            help="Select this prometheus metric name (repeatable)",
        ),
        click.option(
            "--label", "-l", "labels", multiple=True,
            help="Select samples with this label name or name=value pair (repeatable)",
        ),
        click.option(
            "--config", "-c", "config_file", type=click.Path(exists=True, dir_okay=False),
            help="YAML or JSON configuration file; flags extend it",
        ),
        click.option(
            "--timeout", "-t", type=float, default=None,
            help="Network timeout in seconds",
        ),
        click.option(
            "--log-level",
            type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
            default="WARNING",
            help="Logging level",
        ),
    ]
    for option in reversed(options):
        command = option(command)
    return command


def build_config(
    config_file: Optional[str],
    urls: Tuple[str, ...],
    metrics: Tuple[str, ...],
    labels: Tuple[str, ...],
    timeout: Optional[float],
    json_output: bool = False,
) -> HrmmConfig:
    """Merge an optional configuration file with command-line flags."""
    try:
        if config_file:
            return load_config(config_file).merged_with(
                urls=list(urls),
                metrics=list(metrics),
                labels=list(labels),
                timeout_s=timeout,
                json_output=True if json_output else None,
            )

        if not split_list_values(list(urls)):
            raise click.UsageError("At least one --url (or a --config listing urls) is required")
        overrides = {"timeout_s": timeout} if timeout is not None else {}
        return HrmmConfig(
            urls=list(urls),
            metrics=list(metrics),
            labels=list(labels),
            json_output=json_output,
            **overrides,
        )
    except ConfigurationError as exc:
        raise click.ClickException(str(exc))
    except ValidationError as exc:
        raise click.UsageError("; ".join(format_validation_errors(exc)))


def echo_failure(result: FetchResult) -> None:
    click.echo(f"Error fetching metrics from {result.url}: {result.error}", err=True)


def with_log_level(command):
    @functools.wraps(command)
    def wrapper(*args, log_level: str = "WARNING", **kwargs):
        logging.getLogger().setLevel(getattr(logging, log_level))
        return command(*args, **kwargs)
    return wrapper


@click.group()
@click.version_option(version=__version__, prog_name="hrmm")
def cli():
    """hrmm: High-Resolution Metrics Monitor for prometheus endpoints."""
    pass


@cli.command("print")
@fetch_options
@click.option("--json", "-j", "json_output", is_flag=True, help="Output in JSON format")
@with_log_level
def print_metrics(
    urls: Tuple[str, ...],
    metrics: Tuple[str, ...],
    labels: Tuple[str, ...],
    config_file: Optional[str],
    timeout: Optional[float],
    json_output: bool,
):
    """Fetch the specified URLs and print the selected metric values."""
    config = build_config(config_file, urls, metrics, labels, timeout, json_output)
    results = BatchFetcher(config).run()

    failed = False
    for result in results:
        if not result.ok:
            echo_failure(result)
            failed = True
            continue
        if config.json_output:
            click.echo(serialize_json(result.samples))
        else:
            click.echo(serialize_text(result.samples), nl=False)

    if failed:
        sys.exit(1)


@cli.command("list")
@fetch_options
@with_log_level
def list_metrics(
    urls: Tuple[str, ...],
    metrics: Tuple[str, ...],
    labels: Tuple[str, ...],
    config_file: Optional[str],
    timeout: Optional[float],
):
    """List the series exposed by the specified URLs with their help text."""
    config = build_config(config_file, urls, metrics, labels, timeout)
    results = BatchFetcher(config).run()

    failed = False
    for result in results:
        if not result.ok:
            echo_failure(result)
            failed = True
            continue
        if len(results) > 1:
            click.echo(click.style(f"== {result.url}", bold=True))
        for meta, samples in group_by_family(result.samples):
            for sample in samples:
                identifier = sample.identifier(meta.name)
                click.echo(f"{identifier} - {meta.help}" if meta.help else identifier)

    if failed:
        sys.exit(1)


@cli.command()
@click.argument("config_file", type=click.Path(exists=True))
def validate(config_file: str):
    """Validate a configuration file without fetching anything."""
    click.echo(f"Validating configuration: {config_file}")

    is_valid, errors, config = validate_config_file(config_file)
    if is_valid:
        click.echo(click.style("✓ Configuration is valid", fg="green"))
        click.echo(f"  {len(config.urls)} URLs, {len(config.metrics)} metric filters, "
                   f"{len(config.labels)} label filters")
    else:
        click.echo(click.style(f"✗ Configuration has {len(errors)} errors:", fg="red"))
        for i, error in enumerate(errors[:20], 1):
            click.echo(f"  {i}. {error}")
        if len(errors) > 20:
            click.echo(f"  ... and {len(errors) - 20} more errors")

    sys.exit(0 if is_valid else 1)


@cli.command("generate-config")
@click.option(
    "--output", "-o", default="hrmm.yaml",
    help="Output file path"
)
@click.option(
    "--format", "-f", type=click.Choice(["yaml", "json"]), default="yaml",
    help="Configuration file format"
)
def generate_config(output: str, format: str):
    """Generate an example configuration file."""
    output_path = Path(output)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w") as f:
        if format == "yaml":
            yaml.dump(EXAMPLE_CONFIG, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(EXAMPLE_CONFIG, f, indent=2)

    click.echo(f"Generated example configuration at {output_path}")


if __name__ == "__main__":
    cli()
