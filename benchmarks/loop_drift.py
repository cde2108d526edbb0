"""Loop drift benchmark.

Loops a fixed pattern for a number of iterations and measures how late each
iteration starts compared with its ideal, fixed-schedule start time.

Usage:
    python benchmarks/loop_drift.py [--bpm BPM] [--loops N] [--no-spin-wait]
                                    [--device DEVICE_NAME] [--compare]

Options:
    --bpm BPM           Tempo in BPM (default: 200)
    --loops N           Loop iterations to measure (default: 16)
    --no-spin-wait      Disable hybrid sleep+spin (use pure asyncio.sleep)
    --device NAME       MIDI output device name substring (default: no MIDI,
                        events go to a silent in-memory device)
    --compare           Run both modes and print a side-by-side comparison
"""

import argparse
import asyncio
import logging
import statistics

# Suppress playback logging during benchmark - we want clean output.
logging.basicConfig(level=logging.ERROR)

import kickbeats.pattern
import kickbeats.sequencer


BENCHMARK_STEPS = [1, 0, 0, 1, 0, 0, 1, 0, 0, 0, 1, 0, 0, 1, 0, 0]


class SilentDevice:

	"""Accepts every message and does nothing with it."""

	def send_trigger (self, note: int, velocity: int) -> None:
		return None

	def send_release (self, note: int) -> None:
		return None


def _run_benchmark (bpm: float, loops: int, spin_wait: bool, device_name: str | None) -> list[float]:

	"""Play *loops* iterations and return the drift (seconds) at the top of each."""

	drift_log: list[float] = []
	pattern = kickbeats.pattern.Pattern(steps=[bool(step) for step in BENCHMARK_STEPS])

	async def _run () -> None:

		device = None if device_name else SilentDevice()
		seq = kickbeats.sequencer.Sequencer(device=device, device_name=device_name, spin_wait=spin_wait)

		done = asyncio.Event()

		def on_iteration (loop_count: int, ideal_start: float, actual_start: float) -> None:

			drift_log.append(actual_start - ideal_start)

			if len(drift_log) >= loops:
				done.set()

		seq.on_event("iteration", on_iteration)

		await seq.start(pattern, bpm)
		await done.wait()
		await seq.stop()

	asyncio.run(_run())

	return drift_log[:loops]


def _print_report (drift: list[float], bpm: float, spin_wait: bool, label: str = "") -> None:

	if not drift:
		print("No drift data collected.")
		return

	ms = [d * 1000 for d in drift]

	mean_ms   = statistics.mean(ms)
	stdev_ms  = statistics.stdev(ms) if len(ms) > 1 else 0.0
	max_ms    = max(ms)
	trend_ms  = ms[-1] - ms[0] if len(ms) > 1 else 0.0

	mode = "spin-wait ON" if spin_wait else "spin-wait OFF"
	header = f"  {label}  " if label else ""

	print(f"\nLoop Drift Benchmark{header}- {len(ms)} loops at {bpm:.0f} BPM ({mode})")
	print(f"{'-' * 62}")
	print(f"  Mean drift      : {mean_ms:>+8.3f} ms")
	print(f"  Std deviation   : {stdev_ms:>8.3f} ms")
	print(f"  Max drift       : {max_ms:>+8.3f} ms")
	print(f"  First to last   : {trend_ms:>+8.3f} ms  (should not grow)")
	print(f"{'-' * 62}")
	print()


def main () -> None:

	parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
	parser.add_argument("--bpm",          type=float, default=200,  help="Tempo in BPM (default: 200)")
	parser.add_argument("--loops",        type=int,   default=16,   help="Loops to measure (default: 16)")
	parser.add_argument("--no-spin-wait", action="store_true",       help="Disable spin-wait (use pure asyncio.sleep)")
	parser.add_argument("--device",       type=str,   default=None,  help="MIDI output device name substring")
	parser.add_argument("--compare",      action="store_true",       help="Run both modes and compare")
	args = parser.parse_args()

	if args.compare:
		print("\nRunning with spin-wait ON ...")
		spin_drift = _run_benchmark(args.bpm, args.loops, spin_wait=True, device_name=args.device)
		_print_report(spin_drift, args.bpm, spin_wait=True, label="[spin-wait ON]")

		print("Running with spin-wait OFF ...")
		pure_drift = _run_benchmark(args.bpm, args.loops, spin_wait=False, device_name=args.device)
		_print_report(pure_drift, args.bpm, spin_wait=False, label="[spin-wait OFF]")

	else:
		spin = not args.no_spin_wait
		drift = _run_benchmark(args.bpm, args.loops, spin_wait=spin, device_name=args.device)
		_print_report(drift, args.bpm, spin_wait=spin)


if __name__ == "__main__":
	main()
