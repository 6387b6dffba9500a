"""
Release automation script for ez.

Flow:
1) Validate the version (X.Y.Z) and update ezterm/__init__.py
2) Collect the per-platform archives from dist/ (ez-<platform>.<ext>)
3) Write dist/checksums.txt in the format the self-updater verifies
4) Publish a GitHub release via gh (draft by default, --fullpublish for immediate)
5) Roll back the version file if publishing is cancelled or fails
"""

from __future__ import annotations

import argparse
import re
import shutil
import subprocess
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from ezterm.updater.fetcher import ArtifactFetcher  # noqa: E402
from ezterm.core.config import UpdaterConfig  # noqa: E402
from ezterm.updater.integrity import build_manifest  # noqa: E402
from ezterm.updater.platforms import SUPPORTED_PLATFORMS  # noqa: E402

INIT_FILE = ROOT / "ezterm" / "__init__.py"
DIST_DIR = ROOT / "dist"


def parse_current_version(text: str) -> str:
    match = re.search(r"__version__\s*=\s*[\"']([0-9\.]+)[\"']", text)
    return match.group(1) if match else "0.0.0"


def validate_version_or_raise(version: str) -> str:
    version = version.strip().lstrip("v")
    if not re.fullmatch(r"\d+\.\d+\.\d+", version):
        raise RuntimeError("Version must have 3 dot-separated numeric parts (e.g. 0.3.1)")
    return version


def update_init_version(content: str, version: str) -> str:
    if "__version__" not in content:
        raise RuntimeError("__version__ not found in ezterm/__init__.py")
    return re.sub(r"__version__\s*=\s*[\"'][^\"']+[\"']", f"__version__ = \"{version}\"", content)


def expected_archives(dist_dir: Path) -> list[Path]:
    fetcher = ArtifactFetcher(UpdaterConfig())
    archives = [dist_dir / fetcher.artifact_name(d) for d in SUPPORTED_PLATFORMS.values()]
    missing = [p.name for p in archives if not p.exists()]
    if missing:
        raise RuntimeError(f"Missing release archives in {dist_dir}: {', '.join(missing)}")
    return archives


def write_checksums(archives: list[Path], dist_dir: Path) -> Path:
    manifest_path = dist_dir / UpdaterConfig().manifest_name
    manifest_path.write_text(build_manifest(archives), encoding="utf-8")
    return manifest_path


def publish_release(gh_bin: str, version: str, assets: list[Path], full_publish: bool) -> None:
    tag = f"v{version}"
    cmd = [gh_bin, "release", "create", tag, *[str(p) for p in assets], "--title", tag, "--generate-notes"]
    if not full_publish:
        cmd.append("--draft")

    print("\n> Publishing GitHub release...")
    result = subprocess.run(cmd)
    if result.returncode != 0:
        raise RuntimeError("GitHub release publish failed.")


def main() -> int:
    parser = argparse.ArgumentParser(description="ez release automation")
    parser.add_argument("version", help="Release version (format: X.Y.Z)")
    parser.add_argument("--dist", default=str(DIST_DIR), help="Directory holding the built archives")
    parser.add_argument("--fullpublish", action="store_true", help="Publish immediately (default: draft)")
    parser.add_argument("--no-publish", action="store_true", help="Only write checksums.txt")
    args = parser.parse_args()

    init_text = INIT_FILE.read_text(encoding="utf-8")
    try:
        version = validate_version_or_raise(args.version)
        print(f"> Bumping version {parse_current_version(init_text)} -> {version}")
        INIT_FILE.write_text(update_init_version(init_text, version), encoding="utf-8")

        dist_dir = Path(args.dist)
        archives = expected_archives(dist_dir)
        manifest_path = write_checksums(archives, dist_dir)
        print(f"> Wrote {manifest_path}")
        print(manifest_path.read_text(encoding="utf-8"))

        if args.no_publish:
            return 0

        gh_bin = shutil.which("gh")
        if not gh_bin:
            raise RuntimeError("GitHub CLI (gh) not found. Install from https://cli.github.com/")
        publish_release(gh_bin, version, [*archives, manifest_path], args.fullpublish)
        return 0
    except (RuntimeError, OSError) as e:
        INIT_FILE.write_text(init_text, encoding="utf-8")
        print(f"Release failed, version file restored: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
