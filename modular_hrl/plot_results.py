from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import numpy as np
import matplotlib.pyplot as plt


def _ensure_dir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


def _moving_average(x: np.ndarray, window: int) -> np.ndarray:
    if len(x) < window or window <= 1:
        return x
    kernel = np.ones(window, dtype=np.float64) / window
    return np.convolve(x, kernel, mode="valid")


def write_plots(results: Dict[str, Any], out_dir, window: int = 10) -> List[str]:
    """Plot a training run (TrainingHistory.as_dict() / load_results output); returns filenames."""
    out_dir = Path(out_dir)
    _ensure_dir(out_dir)
    files = []

    episodes = results["episodes"]
    rewards = np.array([e["total_reward"] for e in episodes], dtype=np.float64)
    changes = np.array([e["max_value_change"] for e in episodes], dtype=np.float64)

    # Reward curve
    plt.figure()
    plt.plot(rewards, alpha=0.35, label="episode")
    smooth = _moving_average(rewards, window)
    plt.plot(np.arange(len(smooth)) + (len(rewards) - len(smooth)), smooth, label=f"mean of {window}")
    plt.xlabel("episode")
    plt.ylabel("Total agent reward")
    plt.title("Agent reward per episode")
    plt.legend()
    fp = out_dir / "reward_curve.png"
    plt.tight_layout()
    plt.savefig(fp, dpi=180)
    plt.close()
    files.append(fp.name)

    # Value change (convergence)
    plt.figure()
    plt.semilogy(np.maximum(changes, 1e-12))
    plt.xlabel("episode")
    plt.ylabel("max |dQ|")
    plt.title("Largest value change per episode")
    fp = out_dir / "value_change.png"
    plt.tight_layout()
    plt.savefig(fp, dpi=180)
    plt.close()
    files.append(fp.name)

    # Module choice frequencies
    freqs = results["summary"]["choice_frequencies"]
    names = list(freqs.keys())
    plt.figure()
    plt.bar(names, [freqs[n] for n in names])
    plt.xticks(rotation=20, ha="right")
    plt.ylim(0, 1.0)
    plt.ylabel("Fraction of steps")
    plt.title("Arbitration choices")
    fp = out_dir / "choice_frequencies.png"
    plt.tight_layout()
    plt.savefig(fp, dpi=180)
    plt.close()
    files.append(fp.name)

    return files
