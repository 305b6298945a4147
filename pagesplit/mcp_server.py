"""MCP Server for page-split processing."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from fastmcp import FastMCP

from pagesplit import io_utils, runtime_utils
from pagesplit.pipeline import process_image_file, run_images

mcp = FastMCP("pagesplit")
log = logging.getLogger(__name__)


def _output_root(output_path: str | None) -> Path:
    out_path = Path(output_path) if output_path else Path.cwd() / "pagesplit_outputs"
    out_path.mkdir(parents=True, exist_ok=True)
    return out_path


@mcp.tool()
def split_spread(
    input_path: str,
    output_path: str | None = None,
    layout: str = "auto",
    rotation: int = 0,
    debug: bool = False,
) -> dict[str, Any]:
    """
    Split one scanned image into its logical pages.

    Args:
        input_path: Path to the input image file
        output_path: Output directory (optional, defaults to pagesplit_outputs/)
        layout: Layout rule - "auto", "single" or "two"
        rotation: Clockwise pre-rotation in degrees (0/90/180/270)
        debug: If True, also write debug images

    Returns:
        Dictionary with success status, layout and sub-page paths
    """
    input_file = Path(input_path)
    if not input_file.exists():
        return {"success": False, "error": f"Input file not found: {input_path}"}

    try:
        record = process_image_file(
            image_path=str(input_file),
            output_root=str(_output_root(output_path)),
            layout=layout,
            rotation=rotation,
            debug=debug,
        )
    except Exception as e:  # noqa: BLE001
        log.exception("Failed to split %s", input_path)
        return {"success": False, "error": str(e)}

    if record.get("cancelled"):
        return {"success": False, "error": "cancelled"}
    return {
        "success": True,
        "input": str(input_file),
        "layout": record.get("layout"),
        "outputs": [page["path"] for page in record.get("pages", [])],
    }


@mcp.tool()
def split_directory(
    input_dir: str,
    output_dir: str | None = None,
    layout: str = "auto",
    rotation: int = 0,
    concurrency: int = 1,
) -> dict[str, Any]:
    """
    Split every scanned image in a directory.

    Returns:
        Dictionary with success status and the run summary
    """
    images = io_utils.list_images(input_dir)
    if not images:
        return {"success": False, "error": f"No images found in {input_dir}"}
    try:
        conf, debug_enabled = runtime_utils.build_runtime_config(
            None, concurrency=concurrency, layout=layout, rotation=rotation
        )
    except ValueError as e:
        return {"success": False, "error": str(e)}
    out_path = _output_root(output_dir)
    summary = run_images(images, conf, output_root=str(out_path), debug_enabled=debug_enabled)
    return {
        "success": summary["failed"] == 0,
        "total": summary["image_count"],
        "failed": summary["failed"],
        "logical_pages": summary["logical_page_count"],
        "output_dir": str(out_path),
    }


def main():
    """Start the MCP server."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    mcp.run()


if __name__ == "__main__":
    main()
