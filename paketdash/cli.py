import json
import logging

import click
import uvloop

from . import __version__
from .config import Config
from .utils.logging import setup_logging

# Set up logging
setup_logging()
logger = logging.getLogger(__name__)


@click.group()
def cli():
    """paketdash - Procurement budget dashboard backend"""
    pass


@cli.command()
@click.option("--host", help="Host to bind the proxy server to")
@click.option("--port", type=int, help="Port to run server on")
@click.option("--no-cache", is_flag=True, help="Disable the in-memory response cache")
def serve(host, port, no_cache):
    """Start the API proxy and dashboard state server"""
    cfg = Config()
    host = host or cfg.get("host")
    port = port or cfg.get("port")

    click.echo(f"✨ paketdash running at http://{host}:{port}")
    click.echo(f"   Forwarding /api/* to {cfg.get('api_url')}")
    click.echo("Press Ctrl+C to stop the server")

    from .server import start_server_with_args

    try:
        start_server_with_args(host, port, enable_cache=not no_cache)
    except KeyboardInterrupt:
        click.echo("\n👋 Shutting down...")


@cli.command()
@click.option("--port", type=int, help="Port to run the mock backend on")
@click.option("--rows", type=int, help="Number of fake packages to serve")
def mock(port, rows):
    """Start a mock procurement backend with fake data"""
    cfg = Config()
    port = port or cfg.get("mock_port")
    rows = rows if rows is not None else cfg.get("mock_rows")

    click.echo(f"🧪 Mock backend serving {rows} packages at http://127.0.0.1:{port}")

    from .mock_backend import start_mock_server

    try:
        start_mock_server(port, rows)
    except KeyboardInterrupt:
        click.echo("\n👋 Shutting down...")


@cli.command()
@click.option("--year", type=int, help="Budget year")
@click.option("--provinsi", help="Province name")
@click.option("--daerah-tingkat", help="Region level, e.g. Kota or Kabupaten")
@click.option("--kota-kab", help="City or regency name")
@click.option("--search", help="Free-text search")
@click.option("--page", type=int, default=1, show_default=True, help="Table page to show")
@click.option("--json", "as_json", is_flag=True, help="Output in JSON format")
def snapshot(year, provinsi, daerah_tingkat, kota_kab, search, page, as_json):
    """Fetch the dashboard once and print it"""
    from .api.client import ApiError
    from .core.dashboard import DashboardManager

    changes = {
        "year": year,
        "provinsi": provinsi,
        "daerah_tingkat": daerah_tingkat,
        "kota_kab": kota_kab,
        "search_query": search,
    }
    changes = {key: value for key, value in changes.items() if value is not None}

    async def run():
        manager = DashboardManager.from_config(Config())
        try:
            manager.filters = manager.filters.with_changes(changes)
            await manager.initialize()
            if page != 1:
                await manager.fetch_page(page)
            return manager.current_state()
        finally:
            await manager.aclose()

    try:
        state = uvloop.run(run())
    except (ApiError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        click.echo(json.dumps(state, indent=2, default=str))
        return

    filters = state["filters"]
    stats = state["dashboardStats"]
    click.echo(f"Dashboard for {filters['daerahTingkat']} {filters['kotaKab']}, {filters['provinsi']} ({filters['year']})")
    click.echo(f"  Total anggaran: {stats['totalAnggaran'] or '-'}")
    click.echo(f"  Total paket:    {stats['totalPaket']}")
    click.echo(f"  Tender: {stats['tender']}  E-Purchasing: {stats['epkem']}  ", nl=False)
    click.echo(f"Pengadaan Langsung: {stats['pengadaanLangsung']}  Dikecualikan: {stats['dikecualikan']}")
    click.echo(f"\nPage {filters['page']} of {state['totalItems']} rows:")
    for row in state["tableData"]:
        click.echo(f"  {row['no']:>4}. {row['nama']} | {row['pagu']} | {row['status']}")

    errors = {key: value for key, value in state["error"].items() if value}
    for key, value in errors.items():
        click.echo(f"⚠️  {key}: {value}", err=True)


@cli.command()
def version():
    """Show version information"""
    click.echo(f"paketdash v{__version__}")


@cli.group()
def config():
    """Manage configuration settings"""
    pass


@config.command("show")
@click.option("--json", "as_json", is_flag=True, help="Output in JSON format")
def show_config(as_json):
    """Show current configuration"""
    cfg = Config()
    config_data = cfg.get_all()

    if as_json:
        click.echo(json.dumps(config_data, indent=2))
    else:
        click.echo("Current configuration:")
        file_values = cfg._load_config_file()
        for key, value in sorted(config_data.items()):
            # Show source of value
            if cfg.get_env(key) is not None:
                source = " (from environment)"
            elif key in file_values:
                source = " (from config file)"
            else:
                source = " (default)"
            click.echo(f"  {key}: {value}{source}")


@config.command("set")
@click.argument("key")
@click.argument("value")
def set_config(key, value):
    """Set a configuration value"""
    cfg = Config()

    # Validate key
    if key not in Config.DEFAULTS:
        click.echo(f"Error: Unknown configuration key '{key}'")
        click.echo(f"Valid keys: {', '.join(sorted(Config.DEFAULTS.keys()))}")
        return

    # Parse value based on type
    default = Config.DEFAULTS.get(key)
    if isinstance(default, int):
        try:
            value = int(value)
        except ValueError:
            click.echo(f"Error: {key} must be an integer")
            return

    cfg.set(key, value)
    click.echo(f"✅ Set {key} = {value}")


@config.command("unset")
@click.argument("key")
def unset_config(key):
    """Remove a configuration value"""
    cfg = Config()
    cfg.unset(key)
    click.echo(f"✅ Removed {key} from config file")


@cli.command(name="help")
def show_help():
    """Show detailed help and usage examples"""
    click.echo(
        """paketdash - Procurement budget dashboard backend

Usage Examples:

  # Start the proxy and dashboard server
  paketdash serve

  # Start on a different port without the response cache
  paketdash serve --port 9000 --no-cache

  # Run a mock backend for local development
  paketdash mock --port 8000 --rows 300

  # Print the dashboard for a region
  paketdash snapshot --daerah-tingkat Kota --kota-kab Surakarta --provinsi "Jawa Tengah"

  # Show configuration
  paketdash config show

  # Point the server at another backend
  paketdash config set api_url http://backend:8000

  # Show version
  paketdash version

Configuration Keys:
  host                       - Server host (default: 127.0.0.1)
  port                       - Server port (default: 8090)
  api_url                    - Backend for /api/* (env: API_URL)
  backend_api_url            - Backend for paket detail and sales (env: BACKEND_API_URL)
  public_api_url             - Backend used by the dashboard manager (env: PUBLIC_API_URL)
  request_timeout            - Seconds before a backend call times out (default: 30)
  debounce_ms                - Delay before a filter change is fetched (default: 300)
  page_size                  - Table rows per page (default: 10)
  batch_size                 - Rows fetched per backend request (default: 50)
  response_cache_max_entries - Proxy response cache size (default: 256)
  log_level                  - Logging level (default: INFO)
  mock_port                  - Mock backend port (default: 8000)
  mock_rows                  - Mock backend package count (default: 120)
"""
    )
