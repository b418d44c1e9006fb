#!/usr/bin/env python3
"""
Visualize benchmark results from benchmark_results.json
Creates a bar chart comparing execution times of the convolution engines.
"""

import json
import sys

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

# Define colors for implementations
COLORS = {
    'ConvSeq': '#2E86AB',
    'ConvParallel': '#A23B72',
}


def load_results(json_path='benchmark_results.json'):
    """Load benchmark results from JSON file."""
    with open(json_path, 'r') as f:
        data = json.load(f)
    return data


def plot_benchmark_results(data, output_path='benchmark_results.png'):
    """Bar chart of mean time per engine, with per-run spread as error bars."""
    entries = data['results']
    names = [e['py_module'] for e in entries]
    means_ms = [e['python_seconds'] * 1000 for e in entries]
    stds_ms = [float(np.std(e.get('runs', [e['python_seconds']]))) * 1000 for e in entries]

    fig, ax = plt.subplots(figsize=(8, 6))
    bars = ax.bar(names, means_ms, yerr=stds_ms, capsize=6,
                  color=[COLORS.get(n, '#888888') for n in names])

    for bar, value in zip(bars, means_ms):
        ax.text(bar.get_x() + bar.get_width() / 2, bar.get_height(),
                f'{value:.1f} ms', ha='center', va='bottom', fontsize=10)

    h, w = data.get('image_size', [0, 0])
    title = f'3x3 Convolution, {w}x{h} image'
    if 'speedup' in data:
        title += f' (speedup {data["speedup"]:.2f}x)'
    ax.set_title(title, fontsize=14, fontweight='bold')
    ax.set_ylabel('Execution time (ms)')
    ax.grid(axis='y', alpha=0.3)

    fig.tight_layout()
    fig.savefig(output_path, dpi=150)
    plt.close(fig)
    return output_path


if __name__ == "__main__":
    json_path = sys.argv[1] if len(sys.argv) > 1 else 'benchmark_results.json'
    data = load_results(json_path)
    out = plot_benchmark_results(data)
    print(f"Saved plot: {out}")
