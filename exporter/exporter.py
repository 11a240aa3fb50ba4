import logging
import click
from flask import Flask, Response
from prometheus_client import CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST
from collector import VMwareGuestCollector, REFRESH_POLICIES, REFRESH_EXIT
from utils import parse_listen_address

logger = logging.getLogger('vmwareguest_exporter')

LOG_FORMAT = '%(asctime)s %(levelname)s [%(name)s] %(message)s'

INDEX_PAGE = """<html>
<head><title>Vmware Guest Exporter</title></head>
<body>
<h1>Vmware Guest Exporter</h1>
<p><a href="{path}">Metrics</a></p>
</body>
</html>"""


def create_app(registry, telemetry_path='/metrics') -> Flask:
    app = Flask(__name__)

    def metrics():
        return Response(generate_latest(registry), content_type=CONTENT_TYPE_LATEST)

    def index():
        return Response(INDEX_PAGE.format(path=telemetry_path), mimetype='text/html')

    app.add_url_rule(telemetry_path, 'metrics', metrics)
    if telemetry_path != '/':
        app.add_url_rule('/', 'index', index)
    return app


@click.command()
@click.option('--web.listen-address', 'listen_address', default=':9263', show_default=True,
              help='Address on which to expose metrics and web interface.')
@click.option('--web.telemetry-path', 'telemetry_path', default='/metrics', show_default=True,
              help='Path under which to expose metrics.')
@click.option('--vmguestlib.path', 'library_path', default=None,
              help='Path to libvmGuestLib.so, discovered when not set.')
@click.option('--collector.refresh-error', 'refresh_error', type=click.Choice(REFRESH_POLICIES),
              default=REFRESH_EXIT, show_default=True,
              help='On a session refresh failure: exit the process or skip the scrape.')
@click.option('--log.level', 'log_level', default='info', show_default=True,
              type=click.Choice(['debug', 'info', 'warning', 'error']))
def main(listen_address, telemetry_path, library_path, refresh_error, log_level):
    """Export VMware guest statistics to Prometheus."""
    logging.basicConfig(level=log_level.upper(), format=LOG_FORMAT)
    logging.getLogger('werkzeug').setLevel(logging.WARNING)

    try:
        host, port = parse_listen_address(listen_address)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='--web.listen-address')
    if not telemetry_path.startswith('/'):
        raise click.BadParameter('must start with /', param_hint='--web.telemetry-path')

    collector, err = VMwareGuestCollector.create(library_path, refresh_error_policy=refresh_error)
    if err is not None:
        logger.warning('Error creating collector: %s', err)

    registry = CollectorRegistry()
    registry.register(collector)

    app = create_app(registry, telemetry_path)
    logger.info('listening on %s:%d, metrics at %s', host, port, telemetry_path)
    app.run(host=host, port=port)


if __name__ == '__main__':
    main()
