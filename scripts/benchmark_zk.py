#!/usr/bin/env python3
"""
ZK Proof Benchmark Script
=========================

Benchmarks proving and verification time for the SHA-256 preimage circuit
across input sizes.

Usage:
    python scripts/benchmark_zk.py [--iterations N] [--sizes 0,64,1024]
                                   [--repetitions R] [--output FILE]

Setup artifacts are generated in memory for the requested repetition
count, so no artifact files are needed.
"""

import argparse
import json
import secrets
import statistics
import sys
import time
from dataclasses import asdict, dataclass
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from zkengine.config import settings
from zkengine.zk import Sha256Circuit, Sha256Prover, Sha256Verifier, SetupManager, ZKEngineError


# Configuration
DEFAULT_ITERATIONS = 5
DEFAULT_SIZES = "0,55,64,1024"


@dataclass
class BenchmarkResult:
    """Result of a benchmark run."""
    input_size: int
    iterations: int
    proof_size_bytes: int
    prove_min_ms: int
    prove_max_ms: int
    prove_mean_ms: float
    prove_p95_ms: int
    verify_mean_ms: float
    verify_p95_ms: int
    success_rate: float


def percentile(data: list[int], p: int) -> int:
    """Calculate percentile."""
    sorted_data = sorted(data)
    index = int(len(sorted_data) * p / 100)
    return sorted_data[min(index, len(sorted_data) - 1)]


def benchmark_size(prover: Sha256Prover, verifier: Sha256Verifier, size: int, iterations: int) -> BenchmarkResult:
    """Benchmark proving and verification for one input size."""
    prove_times: list[int] = []
    verify_times: list[int] = []
    proof_size = 0
    successes = 0

    print(f"\n{'='*60}")
    print(f"Benchmarking: {size}-byte preimage")
    print(f"Iterations: {iterations}")
    print(f"{'='*60}")

    for i in range(iterations):
        data = secrets.token_bytes(size)
        try:
            start = time.perf_counter()
            proof = prover.prove(data)
            prove_ms = int((time.perf_counter() - start) * 1000)

            start = time.perf_counter()
            valid = verifier.verify(proof, proof.public_digest)
            verify_ms = int((time.perf_counter() - start) * 1000)
        except ZKEngineError as e:
            print(f"  [{i+1}/{iterations}] ✗ FAILED: {e}")
            continue

        prove_times.append(prove_ms)
        verify_times.append(verify_ms)
        proof_size = proof.size_bytes
        if valid:
            successes += 1

        status = "✓" if valid else "✗"
        print(f"  [{i+1}/{iterations}] {status} prove {prove_ms}ms, verify {verify_ms}ms")

    if not prove_times:
        return BenchmarkResult(size, iterations, 0, 0, 0, 0, 0, 0, 0, 0)

    return BenchmarkResult(
        input_size=size,
        iterations=iterations,
        proof_size_bytes=proof_size,
        prove_min_ms=min(prove_times),
        prove_max_ms=max(prove_times),
        prove_mean_ms=statistics.mean(prove_times),
        prove_p95_ms=percentile(prove_times, 95),
        verify_mean_ms=statistics.mean(verify_times),
        verify_p95_ms=percentile(verify_times, 95),
        success_rate=successes / iterations,
    )


def print_results(results: list[BenchmarkResult]) -> bool:
    """Print benchmark results summary."""
    print(f"\n{'='*70}")
    print("BENCHMARK SUMMARY")
    print(f"{'='*70}")

    print(f"\n{'Input':>8} | {'Proof':>10} | {'Prove P95':>10} | {'Verify P95':>10} | Valid")
    print("-" * 70)

    all_valid = True
    for r in results:
        if r.success_rate < 1:
            all_valid = False
        print(
            f"{r.input_size:>7}B | {r.proof_size_bytes:>9}B | {r.prove_p95_ms:>8}ms | "
            f"{r.verify_p95_ms:>8}ms | {r.success_rate*100:.0f}%"
        )

    print()
    return all_valid


def main() -> None:
    parser = argparse.ArgumentParser(description="Benchmark SHA-256 preimage proofs")
    parser.add_argument("--iterations", "-n", type=int, default=DEFAULT_ITERATIONS,
                        help=f"Number of iterations (default: {DEFAULT_ITERATIONS})")
    parser.add_argument("--sizes", "-s", type=str, default=DEFAULT_SIZES,
                        help=f"Comma-separated input sizes in bytes (default: {DEFAULT_SIZES})")
    parser.add_argument("--repetitions", "-r", type=int, default=settings.zk.repetitions,
                        help="Protocol repetitions (default: configured value)")
    parser.add_argument("--output", "-o", type=str, help="Output JSON file for results")

    args = parser.parse_args()
    sizes = [int(s) for s in args.sizes.split(",") if s.strip()]

    print("╔" + "═"*58 + "╗")
    print("║  ZKENGINE SHA-256 PREIMAGE BENCHMARK                     ║")
    print("╚" + "═"*58 + "╝")

    circuit = Sha256Circuit(max(settings.zk.max_input_size, *sizes))
    manager = SetupManager()
    try:
        srs = manager.generate_reference_string(max(settings.zk.srs_k, circuit.shape.min_k))
        artifacts = manager.setup(circuit, srs, args.repetitions)
    except ZKEngineError as e:
        print(f"\n❌ Failed to set up proof system: {e}")
        sys.exit(1)

    print(f"\nRows: {circuit.shape.rows}  Repetitions: {args.repetitions}  "
          f"Security: {artifacts.verifying_key.security_level} bits")

    prover = Sha256Prover(artifacts)
    verifier = Sha256Verifier(artifacts)
    results = [benchmark_size(prover, verifier, size, args.iterations) for size in sizes]

    all_valid = print_results(results)

    if args.output:
        output_data = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "repetitions": args.repetitions,
            "results": [asdict(r) for r in results],
            "all_valid": all_valid,
        }
        with open(args.output, "w") as f:
            json.dump(output_data, f, indent=2)

        print(f"Results saved to: {args.output}")

    sys.exit(0 if all_valid else 1)


if __name__ == "__main__":
    main()
