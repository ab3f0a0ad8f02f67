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
    """Handle build subcommand - process one or more config files."""
    setup_logging(args.verbose)
    from mapmap.cli import run_cli

    config_files = args.config if isinstance(args.config, list) else [args.config]
    total_files = len(config_files)
    failed_files = []
    successful_files = []

    for idx, config_path in enumerate(config_files, 1):
        if total_files > 1:
            logging.info(f"\n{'=' * 80}")
            logging.info(f"Processing config {idx}/{total_files}: {config_path}")
            logging.info(f"{'=' * 80}\n")

        try:
            exit_code = run_cli(config_path)

            if exit_code == 0:
                successful_files.append(config_path)
                if total_files > 1:
                    logging.info(f"✓ Successfully processed: {config_path}")
            else:
                failed_files.append(config_path)
                logging.error(f"✗ Failed to process: {config_path}")

                if args.stop_on_error:
                    logging.error("Stopping due to --stop-on-error flag")
                    break

        except KeyboardInterrupt:
            logging.warning(f"\n✗ Interrupted while processing: {config_path}")
            failed_files.append(config_path)
            break

    if total_files > 1:
        logging.info(f"\n{'=' * 80}")
        logging.info("Processing Summary")
        logging.info(f"{'=' * 80}")
        logging.info(f"Total configs: {total_files}")
        logging.info(f"Successful:    {len(successful_files)}")
        logging.info(f"Failed:        {len(failed_files)}")

        if successful_files:
            logging.info("\nSuccessful configs:")
            for config in successful_files:
                logging.info(f"  ✓ {config}")

        if failed_files:
            logging.info("\nFailed configs:")
            for config in failed_files:
                logging.info(f"  ✗ {config}")

        logging.info(f"{'=' * 80}\n")

    return 1 if failed_files else 0


def cmd_summary(args):
    """Handle summary subcommand - print layers and projection of a map."""
    setup_logging(args.verbose)
    from rich.console import Console
    from rich.table import Table

    from mapmap.cli import open_map
    from mapmap.core.errors import MapError

    try:
        thematic_map = open_map(args.config)
    except (FileNotFoundError, ValueError, MapError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    console = Console()
    table = Table(title="Layers")
    table.add_column("#", justify="right")
    table.add_column("Layer")
    table.add_column("Features", justify="right")
    table.add_column("Keyed", justify="right")
    for idx, layer in enumerate(thematic_map.store.layers()):
        keyed = sum(1 for feature in layer if feature.canonical_key is not None)
        table.add_row(str(idx), layer.name, str(len(layer)), str(keyed))
    console.print(table)

    state = thematic_map.projection.state
    console.print(f"Scale: {state.scale:.4f}")
    console.print(f"Center: {state.center[0]:.4f}, {state.center[1]:.4f}")
    console.print(f"Translate: {state.translate[0]:.1f}, {state.translate[1]:.1f}")
    extent = thematic_map.fitted_extent
    if extent is not None:
        console.print(
            f"Extent: {extent.min_lon:.4f}, {extent.min_lat:.4f} to {extent.max_lon:.4f}, {extent.max_lat:.4f}"
        )
    return 0


def cmd_resolve(args):
    """Handle resolve subcommand - list features matching a selector."""
    setup_logging(args.verbose)
    from rich.console import Console
    from rich.table import Table

    from mapmap.cli import describe_features, open_map
    from mapmap.core.errors import MapError

    try:
        thematic_map = open_map(args.config)
    except (FileNotFoundError, ValueError, MapError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    features = thematic_map.resolve(args.selector)
    console = Console()
    if not features:
        console.print(f"No features match '{args.selector}'")
        return 1

    table = Table(title=f"Features matching '{args.selector}'")
    table.add_column("Layer")
    table.add_column("Key")
    for layer_name, key in describe_features(thematic_map, features):
        table.add_row(layer_name, "" if key is None else key)
    console.print(table)
    return 0


def cmd_formats(args):
    """Handle formats subcommand."""
    from mapmap.outputs import OUTPUT_HANDLERS

    print("Available output formats:")
    print()

    for key, handler_class in OUTPUT_HANDLERS.items():
        print(f"  {key:8} - {handler_class.get_display_name()}")
        print(f"           Extension: .{handler_class.get_file_extension()}")
        print(f"           Options: {handler_class.get_default_options()}")
        print()

    return 0


def main():
    """Main application entry point."""
    parser = argparse.ArgumentParser(
        description="mapmap - Build thematic maps from geometry and tabular data",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    build_parser = subparsers.add_parser("build", help="Load sources and write output files")
    build_parser.add_argument("config", nargs="+", help="YAML configuration file(s) to process")
    build_parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    build_parser.add_argument(
        "--stop-on-error", action="store_true", help="Stop processing remaining configs if one fails"
    )
    build_parser.set_defaults(func=cmd_build)

    summary_parser = subparsers.add_parser("summary", help="Print layers and projection of a map")
    summary_parser.add_argument("config", help="YAML configuration file")
    summary_parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    summary_parser.set_defaults(func=cmd_summary)

    resolve_parser = subparsers.add_parser("resolve", help="List features matching a layer name or key")
    resolve_parser.add_argument("config", help="YAML configuration file")
    resolve_parser.add_argument("selector", help="Layer name or feature key")
    resolve_parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    resolve_parser.set_defaults(func=cmd_resolve)

    formats_parser = subparsers.add_parser("formats", help="List available output formats")
    formats_parser.set_defaults(func=cmd_formats)

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
