"""Entry point for the pagesplit package."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path


def run_cli():
    """Run the CLI mode."""
    from pagesplit import io_utils, runtime_utils
    from pagesplit.options import HeadlessUi
    from pagesplit.pipeline import run_images

    parser = argparse.ArgumentParser(description="Split scanned spreads into logical pages")
    parser.add_argument("--input", required=True, help="Input file or directory")
    parser.add_argument("--output", default=None, help="Output directory for sub-page images (omit to preview only)")
    parser.add_argument("--config", default=None, help="Config file path")
    parser.add_argument("--layout", choices=["auto", "single", "two"], default=None, help="Default layout rule")
    parser.add_argument("--rotate", type=int, choices=[0, 90, 180, 270], default=None, help="Clockwise pre-rotation")
    parser.add_argument("--concurrency", type=int, default=None, help="Worker threads")
    parser.add_argument("--debug", action="store_true", help="Enable debug output")
    parser.add_argument("--debug-level", choices=["none", "full"], default=None, help="Debug level")
    parser.add_argument("--preview-dir", default=None, help="Where preview mode writes layout overlays")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    inputs = io_utils.list_images(args.input)
    if not inputs:
        logging.error("No images found: %s", args.input)
        sys.exit(1)

    try:
        conf, debug_enabled = runtime_utils.build_runtime_config(
            args.config,
            debug=args.debug,
            debug_level=args.debug_level,
            concurrency=args.concurrency,
            layout=args.layout,
            rotation=args.rotate,
        )
    except ValueError as exc:
        logging.error("Invalid configuration: %s", exc)
        sys.exit(2)

    ui = None
    if not args.output:
        ui = HeadlessUi(preview_dir=Path(args.preview_dir) if args.preview_dir else None)

    summary = run_images(
        inputs,
        conf,
        output_root=args.output,
        debug_enabled=debug_enabled,
        ui=ui,
        config_path=args.config,
    )
    if ui is not None:
        print(json.dumps(ui.shown, ensure_ascii=False, indent=2))
    logging.info(
        "Done: %d image(s), %d logical page(s), %d failed, %d cancelled",
        summary["image_count"],
        summary["logical_page_count"],
        summary["failed"],
        summary["cancelled"],
    )
    if summary["failed"]:
        sys.exit(1)


def run_mcp():
    """Run the MCP server mode."""
    from pagesplit.mcp_server import main as mcp_main
    mcp_main()


def main():
    """Main entry point that dispatches to CLI or MCP."""
    if len(sys.argv) > 1 and sys.argv[1] == "--mcp":
        sys.argv.pop(1)  # Remove --mcp flag
        run_mcp()
    else:
        run_cli()


if __name__ == "__main__":
    main()
