import sys

import click

from gpsmap.gps_map_daemon import GpsMapDaemon
from gpsmap.settings import GpsMapSettings


def _confirm(question: str) -> bool:
    try:
        return click.confirm(question, default=False)
    except click.Abort:
        return False


@click.command()
@click.option("--log-level", default=None, help="Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)")
@click.option("--web-port", default=None, type=int, help="Web server port (default: 24877)")
@click.option(
    "--source",
    type=click.Choice(["gpsd", "simulated"]),
    default=None,
    help="Where location fixes come from (default: gpsd)",
)
@click.option("--high-accuracy", is_flag=True, default=False, help="Start in high accuracy (GPS sensors) mode")
@click.option("--open-browser", is_flag=True, default=False, help="Open the location screen in a browser")
def cli(log_level, web_port, source, high_accuracy, open_browser):
    overrides = {}
    if source:
        overrides["location_source"] = source
    if high_accuracy:
        overrides["high_accuracy"] = True

    settings = GpsMapSettings(log_level=log_level, web_port=web_port, **overrides)
    daemon = GpsMapDaemon(settings, prompt=_confirm, open_browser=open_browser)
    sys.exit(daemon.run())


if __name__ == "__main__":
    cli()
