"""Component bundling via the esbuild executable."""

import subprocess
from dataclasses import dataclass
from pathlib import Path


@dataclass
class BundleResult:
    success: bool
    bundle_path: str | None = None
    error: str | None = None


def bundle_component(source_path: str | Path, out_file: str | Path, timeout: float = 60) -> BundleResult:
    """Bundle a TSX/JSX component into a single ESM file at *out_file*.

    React is left external; the editor provides it at load time.
    """
    source = Path(source_path)
    out = Path(out_file)
    if not source.is_file():
        return BundleResult(False, error=f"Component source not found: {source}")
    out.parent.mkdir(parents=True, exist_ok=True)

    try:
        result = subprocess.run(
            [
                "esbuild",
                str(source),
                "--bundle",
                "--format=esm",
                "--jsx=automatic",
                "--external:react",
                "--external:react-dom",
                "--external:react/jsx-runtime",
                f"--outfile={out}",
            ],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError:
        return BundleResult(False, error="esbuild not found. Install it with: npm install -g esbuild")
    except subprocess.TimeoutExpired:
        return BundleResult(False, error=f"esbuild timed out after {timeout}s")

    if result.returncode != 0:
        return BundleResult(False, error=f"esbuild failed: {result.stderr.strip()}")
    return BundleResult(True, bundle_path=str(out))
