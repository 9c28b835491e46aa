"""Command-line interface for the CEC/MPD bridge."""

import asyncio
import logging
import signal
import sys

import click

from cecmpd.app import Bridge
from cecmpd.cec import osd_command
from cecmpd.config import settings
from cecmpd.errors import MPDError, PlaylistError, TransportClosed
from cecmpd.mpd_client import MPDClient
from cecmpd.playlists import update_playlists

logger = logging.getLogger(__name__)


def get_client() -> MPDClient:
    """Create MPD client from settings."""
    return MPDClient(
        host=settings.mpd.host,
        port=settings.mpd.port,
        timeout=settings.mpd.timeout,
    )


def run_async(coro):
    """Run an async coroutine."""
    return asyncio.run(coro)


@click.group()
@click.option(
    "--mpd-host",
    envvar="CECMPD_MPD__HOST",
    default="localhost",
    help="MPD host",
)
@click.option("--verbose", is_flag=True, help="Log debug output")
@click.pass_context
def main(ctx, mpd_host, verbose):
    """Drive MPD from the AV receiver remote and show it on the receiver OSD."""
    ctx.ensure_object(dict)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings.mpd.host = mpd_host


@main.command()
@click.option(
    "-o",
    "--osd-max-length",
    type=int,
    default=14,
    show_default=True,
    help="Maximum number of characters the receiver OSD can show",
)
@click.option(
    "-v",
    "--audio-volume-preset",
    type=int,
    help="Volume level to set when the receiver wakes up",
)
@click.option(
    "--handover-command",
    help="CEC command that switches the receiver to the TV input",
)
@click.option("--tv-volume-preset", type=int, help="Volume level after a hand-off")
@click.option(
    "--bravia-profile",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON file with hostname, preSharedKey and appTitle of the TV",
)
@click.pass_context
def run(ctx, osd_max_length, audio_volume_preset, handover_command, tv_volume_preset, bravia_profile):
    """Run the bridge."""
    settings.osd.max_length = osd_max_length
    if audio_volume_preset is not None:
        settings.volume.preset = audio_volume_preset
    if handover_command:
        settings.handoff.cec_command = handover_command
    if tv_volume_preset is not None:
        settings.handoff.volume_preset = tv_volume_preset
    if bravia_profile:
        settings.handoff.bravia_profile = bravia_profile

    logger.info("osd max length: %d", settings.osd.max_length)
    logger.info("volume preset: %s", settings.volume.preset)

    async def _run():
        bridge = Bridge(settings)
        loop = asyncio.get_running_loop()
        task = asyncio.current_task()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, task.cancel)
        try:
            await bridge.run()
        except asyncio.CancelledError:
            logger.info("Stopped")

    try:
        run_async(_run())
    except TransportClosed as e:
        click.echo(f"Stopping: {e}", err=True)
        sys.exit(1)


@main.command()
@click.pass_context
def status(ctx):
    """Show current MPD status."""
    client = get_client()

    async def _status():
        try:
            s = await client.status()
        except (MPDError, OSError) as e:
            click.echo(f"MPD error: {e}", err=True)
            sys.exit(1)
        click.echo(f"State:    {s.state.value}")
        if s.song is not None:
            click.echo(f"Song:     {s.song} of {s.playlistlength}")
        if s.elapsed is not None:
            click.echo(f"Elapsed:  {s.elapsed} / {s.duration}")
        click.echo(f"Repeat:   {'on' if s.repeat else 'off'}")
        click.echo(f"Random:   {'on' if s.random else 'off'}")

    run_async(_status())


@main.command()
@click.option("--conf", "conf_path", default=None, help="Path to mpd.conf")
@click.pass_context
def playlists(ctx, conf_path):
    """Rebuild playlists from the music folders and list them."""

    async def _playlists():
        try:
            names = await update_playlists(conf_path or settings.mpd.conf_path)
        except PlaylistError as e:
            click.echo(str(e), err=True)
            sys.exit(1)
        for name in names:
            click.echo(f"  {name}")

    run_async(_playlists())


@main.command()
@click.argument("text")
@click.option("-o", "--osd-max-length", type=int, default=14, show_default=True)
@click.pass_context
def osd(ctx, text, osd_max_length):
    """Print the cec-client command that shows TEXT on the OSD."""
    click.echo(osd_command(text, osd_max_length))


if __name__ == "__main__":
    main()
