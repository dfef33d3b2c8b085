"""Command line interface for the RentEasy storefront."""

from pathlib import Path
from typing import Optional

import click

from renteasy.config import BRANDS, get_brand, get_renteasy_config
from renteasy.renteasy import RentEasyService
from renteasy.site import render_service_worker

BRAND_CHOICE = click.Choice(sorted(BRANDS), case_sensitive=False)


@click.group()
@click.version_option(package_name="renteasy", prog_name="renteasy")
def cli():
    """RentEasy storefront backend - serve the API and static site, or render the service worker."""


@cli.command()
@click.option("--brand", type=BRAND_CHOICE, default=None, help="Storefront brand (defaults to RENTEASY__BRAND).")
@click.option("--url", default=None, help="Service URL, e.g. http://0.0.0.0:5000 (defaults to RENTEASY__URL).")
@click.option("--log-level", default=None, help="Uvicorn log level (defaults to RENTEASY__LOG_LEVEL).")
def serve(brand: Optional[str], url: Optional[str], log_level: Optional[str]):
    """Run the storefront service until interrupted."""
    cfg = get_renteasy_config().RENTEASY
    url = url or cfg.URL
    click.echo(f"Starting {get_brand(brand or cfg.BRAND).display_name} at {url}...")
    click.echo("Press Ctrl+C to stop.")
    RentEasyService.launch(url=url, brand=brand, log_level=log_level)


@cli.command("service-worker")
@click.option("--brand", type=BRAND_CHOICE, default=None, help="Storefront brand (defaults to RENTEASY__BRAND).")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    default=None,
    help="Write the script to FILE instead of stdout.",
)
def service_worker(brand: Optional[str], output: Optional[Path]):
    """Render the cache-first service worker script for a brand."""
    cfg = get_renteasy_config().RENTEASY
    profile = get_brand(brand or cfg.BRAND)
    script = render_service_worker(cfg.CACHE_NAME or profile.cache_name, profile.precache)

    if output is None:
        click.echo(script, nl=False)
        return
    output.write_text(script, encoding="utf-8")
    click.echo(f"Wrote {profile.display_name} service worker to {output}")


def main():
    cli()


if __name__ == "__main__":
    main()
