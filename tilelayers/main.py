"""Main application entry point."""

import argparse
import logging
import sys


def setup_logging(verbose: bool = False):
    """
    Set up logging configuration.

    Args:
        verbose: Enable verbose logging
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(),
        ],
    )


def cmd_build(args):
    """Handle build subcommand - build the layers of one or more config files."""
    setup_logging(args.verbose)
    from tilelayers.cli import run_cli

    config_files = args.config if isinstance(args.config, list) else [args.config]
    total_files = len(config_files)
    failed_files = []
    successful_files = []

    for idx, config_path in enumerate(config_files, 1):
        if total_files > 1:
            logging.info(f"Processing config {idx}/{total_files}: {config_path}")

        try:
            exit_code = run_cli(config_path)

            if exit_code == 0:
                successful_files.append(config_path)
            else:
                failed_files.append(config_path)
                logging.error(f"✗ Failed to process: {config_path}")

                if args.stop_on_error:
                    logging.error("Stopping due to --stop-on-error flag")
                    break

        except KeyboardInterrupt:
            logging.warning(f"✗ Interrupted while processing: {config_path}")
            failed_files.append(config_path)
            break
        except Exception as e:
            logging.exception(f"Unexpected error processing {config_path}: {e}")
            failed_files.append(config_path)

            if args.stop_on_error:
                logging.error("Stopping due to --stop-on-error flag")
                break

    if total_files > 1:
        logging.info("Processing Summary")
        logging.info(f"Total configs: {total_files}")
        logging.info(f"Successful:    {len(successful_files)}")
        logging.info(f"Failed:        {len(failed_files)}")

        for config in failed_files:
            logging.info(f"  ✗ {config}")

    return 1 if failed_files else 0


def cmd_capabilities(args):
    """Handle capabilities subcommand - list the named layers of a WMS."""
    setup_logging(args.verbose)
    from tilelayers.core.errors import SourceUnreachable
    from tilelayers.core.wms_client import WmsClient

    try:
        capabilities = WmsClient().retrieve_capabilities(args.address)
    except SourceUnreachable as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    service = capabilities.service_information
    print(f"WMS {capabilities.version}: {service.title or service.name or args.address}")
    print(f"Formats: {', '.join(capabilities.image_formats)}")
    print()

    for layer in capabilities.named_layers():
        print(f"  {layer.name} - {layer.title or ''}")
        print(f"      CRS: {' '.join(sorted(layer.reference_systems))}")
        bbox = layer.geographic_bounding_box
        if bbox is not None and not bbox.is_empty():
            print(
                f"      Bounds: {bbox.min_longitude:.4f}, {bbox.min_latitude:.4f} "
                f"to {bbox.max_longitude:.4f}, {bbox.max_latitude:.4f}"
            )
        print()

    return 0


def cmd_list_sources(args):
    """Handle list-sources subcommand."""
    from tilelayers.core.config import SOURCES

    print("Available layer sources:")
    print()

    for key, source in SOURCES.items():
        print(f"  {key} - {source.display_name}")
        print(f"      {source.description}")
        print(f"      Source: {source.source}, Location: {source.location}")
        if source.layer_names:
            print(f"      Layers: {', '.join(source.layer_names)}")
        print()

    return 0


def _set_app_metadata(app):
    """
    Set organization and application metadata.

    Args:
        app: QCoreApplication instance
    """
    app.setOrganizationName("tilelayers")
    app.setApplicationName("tile-layers")


def main():
    """Main application entry point."""
    parser = argparse.ArgumentParser(
        description="Tile Layers - Build globe imagery layers from GeoPackage files and Web Map Services",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    build_parser = subparsers.add_parser("build", help="Build the layers described in config files")
    build_parser.add_argument("config", nargs="+", help="YAML configuration file(s) to process")
    build_parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    build_parser.add_argument(
        "--stop-on-error", action="store_true", help="Stop processing remaining configs if one fails"
    )
    build_parser.set_defaults(func=cmd_build)

    capabilities_parser = subparsers.add_parser("capabilities", help="List the named layers of a WMS")
    capabilities_parser.add_argument("address", help="WMS service address")
    capabilities_parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    capabilities_parser.set_defaults(func=cmd_capabilities)

    list_parser = subparsers.add_parser("list-sources", help="List built-in layer sources")
    list_parser.set_defaults(func=cmd_list_sources)

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 1

    # Results are delivered through the Qt event loop, as in a GUI host
    from PyQt6.QtCore import QCoreApplication

    from tilelayers.core.front_context import QtFrontContext, set_front_context

    app = QCoreApplication.instance() or QCoreApplication(sys.argv)
    _set_app_metadata(app)
    set_front_context(QtFrontContext())

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
