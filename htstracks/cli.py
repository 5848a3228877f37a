"""
Command-line interface for HTSTracks.

HTSTracks: track data assembly for genomic signal viewers
"""

import logging
import sys
from pathlib import Path

import click

from . import __version__
from .config import CONFIG_TEMPLATE, PlotStyle, ViewerConfig
from .core.errors import TrackDataError
from .core.models import GenomicRegion, SampleRef


def _setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )


def _load_config(config_path, url, codec) -> ViewerConfig:
    try:
        config = ViewerConfig.from_yaml(Path(config_path)) if config_path else ViewerConfig()
    except (OSError, ValueError) as e:
        click.echo(f"Error loading config: {e}", err=True)
        sys.exit(1)

    if url:
        config.service.url = url
    if codec:
        config.service.codec = codec
    return config


def _open_assembly(config: ViewerConfig):
    from .assembly import TrackDataAssembly

    return TrackDataAssembly.from_config(config.service)


def _parse_region(region: str, genome: str) -> GenomicRegion:
    try:
        return GenomicRegion.parse(region, genome)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def service_options(f):
    """Options shared by commands that talk to the service."""
    f = click.option('--verbose', '-v', is_flag=True, help='Debug logging')(f)
    f = click.option('--codec', type=click.Choice(['text', 'binary']),
                     help='Wire codec (default: from config, else text)')(f)
    f = click.option('--url', '-u', type=str, help='Service base URL (overrides config)')(f)
    f = click.option('--config', '-c', 'config_path', type=click.Path(exists=True),
                     help='YAML configuration file')(f)
    return f


def region_options(f):
    f = click.option('--window', '-w', type=click.IntRange(min=1), default=1,
                     help='Bin width in bp (default: 1)')(f)
    f = click.option('--genome', '-g', type=str, required=True,
                     help='Genome assembly, e.g. hg19')(f)
    f = click.option('--region', '-r', type=str, required=True,
                     help='Region as chr:start-end')(f)
    return f


@click.group()
@click.version_option(version=__version__)
def cli():
    """HTSTracks: genomic track data assembly."""
    pass


@cli.command()
@click.argument('sample_id')
@service_options
def info(sample_id, config_path, url, codec, verbose):
    """Show storage kind, read length and genome of a sample."""
    _setup_logging(verbose)
    config = _load_config(config_path, url, codec)
    sample = SampleRef(sample_id)

    try:
        with _open_assembly(config) as assembly:
            capability = assembly.get_capability(sample)
            genome = assembly.fetch_genome(sample)
            read_length = assembly.get_read_length(sample) if capability.has_read_support else None
    except TrackDataError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Sample:       {sample_id}")
    click.echo(f"Genome:       {genome}")
    click.echo(f"Storage kind: {capability.storage_kind.value}")
    click.echo(f"Read support: {'yes' if capability.has_read_support else 'no'}")
    click.echo(f"Vector track: {'yes' if capability.is_vector_track else 'no'}")
    if read_length is not None:
        click.echo(f"Read length:  {read_length}")


@cli.command()
@click.argument('sample_id')
@region_options
@service_options
@click.option('--normalize', is_flag=True, help='Report reads per million mapped reads')
def counts(sample_id, region, genome, window, config_path, url, codec, verbose, normalize):
    """Print per-bin read counts for a region as TSV."""
    _setup_logging(verbose)
    config = _load_config(config_path, url, codec)
    sample = SampleRef(sample_id, genome)
    query = _parse_region(region, genome)

    try:
        with _open_assembly(config) as assembly:
            values = assembly.fetch_counts(sample, query, window)
            mapped = assembly.fetch_mapped_reads(sample, genome, window) if normalize else None
    except TrackDataError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo("chr\tstart\tend\tvalue")
    for i, value in enumerate(values.tolist()):
        start = query.start + i * window
        end = min(start + window, query.end)
        if mapped:
            click.echo(f"{query.chr}\t{start}\t{end}\t{value * 1e6 / mapped:.4f}")
        else:
            click.echo(f"{query.chr}\t{start}\t{end}\t{value}")


@cli.command()
@click.argument('sample_id')
@region_options
@service_options
def reads(sample_id, region, genome, window, config_path, url, codec, verbose):
    """Print read starts and strands for a region as TSV."""
    _setup_logging(verbose)
    config = _load_config(config_path, url, codec)
    sample = SampleRef(sample_id, genome)
    query = _parse_region(region, genome)

    try:
        with _open_assembly(config) as assembly:
            result = assembly.fetch_reads(sample, query, window)
    except TrackDataError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo("chr\tstart\tstrand")
    for start, strand in result:
        click.echo(f"{query.chr}\t{start}\t{strand.value}")


@cli.command()
@click.argument('sample_id')
@region_options
@service_options
@click.option('--output', '-o', type=click.Path(), required=True, help='Output image file')
@click.option('--kind', type=click.Choice(['counts', 'reads']), default='counts',
              help='Track kind (default: counts)')
@click.option('--style', type=click.Choice([s.value for s in PlotStyle]),
              help='Plot style (default: from config)')
@click.option('--normalize', is_flag=True, help='Scale counts to reads per million')
@click.option('--ymax', type=float, help='Fixed Y maximum (disables auto-scale)')
def plot(sample_id, region, genome, window, config_path, url, codec, verbose,
         output, kind, style, normalize, ymax):
    """Render one track for a region to an image file."""
    try:
        import matplotlib
    except ImportError:
        click.echo("Error: plotting requires matplotlib. Install with: pip install htstracks[plot]", err=True)
        sys.exit(1)
    matplotlib.use('Agg')

    from .tracks import CountsSource, MatplotlibSurface, ReadsSource, RenderableTrack, TrackState

    _setup_logging(verbose)
    config = _load_config(config_path, url, codec)
    sample = SampleRef(sample_id, genome)
    query = _parse_region(region, genome)

    track_style = config.track
    if style:
        track_style.style = PlotStyle(style)
    if normalize:
        track_style.normalize = True
    if ymax is not None:
        if ymax <= 0:
            click.echo("Error: --ymax must be positive", err=True)
            sys.exit(1)
        track_style.auto_scale = False
        track_style.fixed_scale = ymax

    with _open_assembly(config) as assembly:
        source_cls = ReadsSource if kind == 'reads' else CountsSource
        source = source_cls(assembly, sample)

        with RenderableTrack(source, style=track_style, max_workers=config.max_workers) as track:
            surface = MatplotlibSurface(title=f"{sample_id} ({kind})")
            track.create_graph(surface)
            track.set_region(query, window).result()

            if track.state is TrackState.FAILED:
                surface.close()
                click.echo(f"Error: {track.error}", err=True)
                sys.exit(1)

            track.apply_pending_update(surface)
            surface.savefig(output)
            surface.close()

    click.echo(f"Wrote {kind} track for {query} to {output}")


@cli.command()
@click.option('--output', '-o', type=click.Path(), default='htstracks.yaml',
              help='Output config file path')
def init(output):
    """Generate a template configuration file."""
    with open(output, 'w') as f:
        f.write(CONFIG_TEMPLATE)

    click.echo(f"Generated configuration template: {output}")
    click.echo("\nEdit this file and run:")
    click.echo(f"  htstracks info SAMPLE_ID --config {output}")


if __name__ == '__main__':
    cli()
