#!/usr/bin/env python3
"""
Benchmark: nodes searched, depth reached and time per move on fixed positions.

Run before and after each search or evaluation change to quantify its
effect. Fewer nodes at the same depth means better pruning; a higher depth
within the same budget means a faster search.

Each position is sent to the text protocol engine in a subprocess, exactly
as a front end would drive it.

Usage: python3 tools/bench.py [easy|medium|hard] [movetime_ms]
"""
import os
import subprocess
import sys

REPO = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
PYTHON = sys.executable
ENGINE = os.path.join(REPO, "interface", "protocol.py")

# Fixed positions spanning opening, middlegame and capture tactics. Black is
# to move in all of them (an odd number of steps from the start).
POSITIONS = [
    ("After 1.c3d4",  "startpos moves c3d4"),
    ("After 1.e3f4",  "startpos moves e3f4"),
    ("Exchange",      "startpos moves c3d4 f6e5 d4f6 g7e5 b2c3"),
    ("Centre push",   "startpos moves e3d4 d6c5 d2e3"),
    ("Flank",         "startpos moves a3b4 b6a5 g3h4"),
    ("Long opening",  "startpos moves c3d4 b6c5 d4b6 a7c5 e3d4 c5e3 f2d4 h6g5 g3h4"),
]


def run_position(label: str, pos_spec: str, difficulty: str, movetime: int) -> dict:
    """
    Run one position through the engine and return its metrics.

    Args:
        label:      Human-readable position name.
        pos_spec:   Protocol position string (e.g. "startpos moves c3d4").
        difficulty: Tier passed to "go".
        movetime:   Search budget in milliseconds.

    Returns:
        Dict with keys: label, move, depth, score, nodes, time_ms.
    """
    env = {**os.environ, "PYTHONPATH": REPO}
    proc = subprocess.Popen(
        [PYTHON, ENGINE],
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.DEVNULL,
        text=True,
        env=env,
    )
    cmds = f"hello\nisready\nposition {pos_spec}\ngo {difficulty} movetime {movetime}\n"
    proc.stdin.write(cmds)
    proc.stdin.flush()

    nodes = time_ms = depth = score = 0
    move = "(none)"
    for line in proc.stdout:
        line = line.strip()
        if line.startswith("info depth"):
            parts = line.split()

            def _get(key: str) -> int:
                try:
                    return int(parts[parts.index(key) + 1])
                except (ValueError, IndexError):
                    return 0

            depth = _get("depth")
            score = _get("score")
            nodes = _get("nodes")
            time_ms = _get("time")
        elif line.startswith("bestmove"):
            move = line.split()[1]
            break

    proc.stdin.write("quit\n")
    proc.stdin.flush()
    proc.wait(timeout=5)

    return {
        "label": label,
        "move": move,
        "depth": depth,
        "score": score,
        "nodes": nodes,
        "time_ms": time_ms,
    }


def main() -> None:
    """Run all benchmark positions and print a summary table."""
    difficulty = sys.argv[1] if len(sys.argv) > 1 else "hard"
    movetime = int(sys.argv[2]) if len(sys.argv) > 2 else 5000

    print(f"Checkers engine benchmark: {PYTHON}")
    print(f"Engine: {ENGINE}  difficulty={difficulty}  movetime={movetime}ms")
    print()
    print(f"{'Position':<14} {'Move':<7} {'Depth':>5} {'Score':>7} {'Nodes':>9} {'Time(ms)':>9}")
    print("-" * 56)

    results = []
    for label, pos in POSITIONS:
        r = run_position(label, pos, difficulty, movetime)
        results.append(r)
        print(
            f"{r['label']:<14} {r['move']:<7} {r['depth']:>5} {r['score']:>7} "
            f"{r['nodes']:>9,} {r['time_ms']:>9,}"
        )

    valid = [r for r in results if r["nodes"] > 0]
    if valid:
        avg_nodes = sum(r["nodes"] for r in valid) // len(valid)
        avg_time = sum(r["time_ms"] for r in valid) // len(valid)
        avg_depth = sum(r["depth"] for r in valid) / len(valid)
        print("-" * 56)
        print(f"{'AVERAGE':<14} {'':<7} {avg_depth:>5.1f} {'':>7} {avg_nodes:>9,} {avg_time:>9,}")


if __name__ == "__main__":
    main()
