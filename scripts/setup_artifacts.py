#!/usr/bin/env python3
"""
Setup Artifact Generation Script
================================

Generate the reference string, proving key and verifying key once and
write them to the configured paths.

Usage:
    python scripts/setup_artifacts.py
    python scripts/setup_artifacts.py --k 18 --seed 00ff...
    python scripts/setup_artifacts.py --output-dir artifacts/ --force

Version: 0.1.0
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from zkengine.config import settings
from zkengine.logging import get_logger, setup_logging
from zkengine.zk import ArtifactPaths, Sha256Circuit, SetupManager, ZKEngineError

setup_logging(log_level="INFO", json_logs=False, service_name="setup-artifacts")
logger = get_logger(__name__)


def resolve_paths(output_dir: str | None) -> ArtifactPaths:
    """Configured artifact paths, optionally relocated under `output_dir`."""
    paths = ArtifactPaths.from_settings(settings.zk)
    if output_dir is None:
        return paths
    base = Path(output_dir)
    return ArtifactPaths(
        reference_string=base / paths.reference_string.name,
        proving_key=base / paths.proving_key.name,
        verifying_key=base / paths.verifying_key.name,
    )


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate zkengine setup artifacts")
    parser.add_argument("--k", type=int, default=settings.zk.srs_k,
                        help=f"Reference string size exponent (default: {settings.zk.srs_k})")
    parser.add_argument("--seed", type=str, default=settings.zk.srs_seed,
                        help="Hex seed for a reproducible reference string")
    parser.add_argument("--max-input-size", type=int, default=settings.zk.max_input_size,
                        help=f"Circuit capacity in bytes (default: {settings.zk.max_input_size})")
    parser.add_argument("--repetitions", type=int, default=settings.zk.repetitions,
                        help=f"Protocol repetitions (default: {settings.zk.repetitions})")
    parser.add_argument("--output-dir", type=str, help="Write artifacts here instead of the configured paths")
    parser.add_argument("--force", action="store_true", help="Overwrite existing artifacts")

    args = parser.parse_args()
    paths = resolve_paths(args.output_dir)

    existing = [p for p in paths.all() if p.exists()]
    if existing and not args.force:
        logger.error("artifacts_exist", paths=[str(p) for p in existing])
        print("Artifacts already exist. Use --force to overwrite.")
        return 1

    circuit = Sha256Circuit(args.max_input_size)
    manager = SetupManager()

    try:
        reference_string = manager.generate_reference_string(args.k, args.seed)
        artifacts = manager.setup(circuit, reference_string, args.repetitions)
        manager.save(artifacts, paths)
    except ZKEngineError as e:
        logger.error("setup_failed", error=e.message, **e.context)
        return 1
    except (OSError, ValueError) as e:
        logger.error("setup_failed", error=str(e))
        return 1

    vk = artifacts.verifying_key
    logger.info(
        "setup_artifacts_written",
        rows=vk.shape.rows,
        min_k=vk.shape.min_k,
        k=reference_string.k,
        repetitions=vk.repetitions,
        security_level=vk.security_level,
        verifying_key_digest=vk.digest.hex(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
