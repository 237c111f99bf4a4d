"""
Visualization Helpers
=====================
Plotting functions for partitions, benchmark results, feature selection,
tuning and susceptibility maps. Every function saves a PNG and closes the
figure.
"""

import math

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns

_SPLIT_COLOURS = {"train": "#9E9E9E", "validation": "#FF9800", "test": "#F44336"}


def _save(output_path):
    plt.tight_layout()
    plt.savefig(output_path, dpi=150)
    plt.close()
    print(f"  Saved: {output_path}")


def plot_grid_blocks(points, grid, output_path, split_column='split', target='slides'):
    """
    Plot the block grid with points coloured by split.

    Args:
        points: GeoDataFrame with a split column
        grid: GeoDataFrame from build_grid()
        output_path: Path to save the figure
    """
    fig, ax = plt.subplots(figsize=(8, 8))
    grid.boundary.plot(ax=ax, color='black', linewidth=0.8)
    for _, cell in grid.iterrows():
        c = cell.geometry.centroid
        ax.annotate(str(cell['block_id']), (c.x, c.y), ha='center', va='center',
                    fontsize=11, color='#1565C0', alpha=0.7)

    for split, colour in _SPLIT_COLOURS.items():
        subset = points[points[split_column] == split]
        if subset.empty:
            continue
        marker_sizes = np.where(subset[target] == 1, 18, 8)
        subset.plot(ax=ax, color=colour, markersize=marker_sizes,
                    label=f"{split} (n={len(subset)})")

    ax.set_title("Grid blocks and train / validation / test split")
    ax.set_xlabel("x")
    ax.set_ylabel("y")
    ax.legend(loc='upper right')
    _save(output_path)


def plot_partition_map(task, resampling, output_path, repeat=1, max_folds=12):
    """
    Plot train and test points of each fold in one repeat.

    Args:
        task: ClassificationTask
        resampling: Instantiated SpatialResampling
        repeat: 1-based repeat to show
    """
    folds = [(k, test) for (r, k), (_, test) in zip(resampling.iterations_, resampling.splits_)
             if r == repeat - 1][:max_folds]
    if not folds:
        raise ValueError(f"Repeat {repeat} not present in resampling")

    n_cols = min(3, len(folds))
    n_rows = math.ceil(len(folds) / n_cols)
    fig, axes = plt.subplots(n_rows, n_cols, figsize=(4 * n_cols, 4 * n_rows), squeeze=False)
    coords = task.coordinates

    for ax, (k, test) in zip(axes.ravel(), folds):
        is_test = np.zeros(task.n_obs, dtype=bool)
        is_test[test] = True
        ax.scatter(coords[~is_test, 0], coords[~is_test, 1], s=4,
                   color=_SPLIT_COLOURS['train'], label='train')
        ax.scatter(coords[is_test, 0], coords[is_test, 1], s=6,
                   color=_SPLIT_COLOURS['test'], label='test')
        ax.set_title(f"Fold {k + 1}")
        ax.set_xticks([])
        ax.set_yticks([])
    for ax in axes.ravel()[len(folds):]:
        ax.axis('off')

    axes[0, 0].legend(loc='upper right', fontsize=8)
    fig.suptitle(f"{resampling.describe()} - repeat {repeat}")
    _save(output_path)


def plot_benchmark_boxplot(results, output_path, measure='auc'):
    """
    Box plot of a measure per resampling strategy and learner.

    Args:
        results: DataFrame from benchmark()
    """
    plt.figure(figsize=(9, 5))
    sns.boxplot(data=results, x='resampling', y=measure, hue='learner')
    if measure == 'auc':
        plt.axhline(0.5, color='gray', linestyle='--', linewidth=1, alpha=0.6)
    plt.title(f"{measure.upper()} by resampling strategy")
    plt.xlabel("Resampling")
    plt.ylabel(measure.upper())
    plt.grid(True, axis='y', alpha=0.3)
    _save(output_path)


def plot_rfe_curve(result, output_path):
    """
    Plot mean AUC (+/- 1 sd) against the number of features kept by RFE.

    Args:
        result: FeatureSelectionResult
    """
    curve = result.scores
    plt.figure(figsize=(8, 5))
    plt.plot(curve['n_features'], curve['mean_auc'], marker='o', color='#2196F3')
    plt.fill_between(curve['n_features'],
                     curve['mean_auc'] - curve['std_auc'],
                     curve['mean_auc'] + curve['std_auc'],
                     color='#2196F3', alpha=0.2)
    plt.axvline(len(result.selected_features), color='#F44336', linestyle='--',
                label=f"selected: {len(result.selected_features)}")
    plt.xlabel("Number of features")
    plt.ylabel("Mean AUC")
    plt.title("Recursive feature elimination")
    plt.grid(True, alpha=0.3)
    plt.legend()
    _save(output_path)


def plot_tuning_history(history, output_path):
    """
    Plot the score of each tuning evaluation and the running best.

    Args:
        history: DataFrame with 'evaluation' and 'score' columns
    """
    plt.figure(figsize=(8, 5))
    plt.scatter(history['evaluation'], history['score'], s=14, color='#9E9E9E', label='evaluation')
    plt.plot(history['evaluation'], history['score'].cummax(), color='#4CAF50',
             linewidth=2, label='best so far')
    plt.xlabel("Evaluation")
    plt.ylabel("Mean inner AUC")
    plt.title("Hyperparameter tuning")
    plt.grid(True, alpha=0.3)
    plt.legend()
    _save(output_path)


def plot_susceptibility_map(prob_map, profile, output_path, points=None, target='slides'):
    """
    Plot a predicted susceptibility grid, optionally with observed landslides.

    Args:
        prob_map: [H, W] probabilities, NaN outside the study area
        profile: rasterio profile of the grid
        points: Optional GeoDataFrame of observations
    """
    t = profile['transform']
    extent = [t.c, t.c + t.a * profile['width'], t.f + t.e * profile['height'], t.f]

    fig, ax = plt.subplots(figsize=(8, 7))
    im = ax.imshow(np.ma.masked_invalid(prob_map), extent=extent, cmap='RdYlGn_r',
                   vmin=0, vmax=1, origin='upper')
    fig.colorbar(im, ax=ax, label='Landslide probability')
    if points is not None:
        slides = points[points[target] == 1]
        ax.scatter(slides.geometry.x, slides.geometry.y, s=6, color='black', label='landslide')
        ax.legend(loc='upper right')
    ax.set_title("Landslide susceptibility")
    ax.set_xlabel("x")
    ax.set_ylabel("y")
    _save(output_path)


def plot_confusion_matrix_heatmap(tp, fp, tn, fn, threshold, output_path):
    """
    Confusion matrix of the holdout blocks, with each cell's share of its
    actual class and POD / FAR / CSI in the title.

    Args:
        tp, fp, tn, fn: Confusion matrix counts
        threshold: Probability threshold used to call a landslide
        output_path: Path to save the figure
    """
    cm = np.array([[tn, fp], [fn, tp]])
    row_totals = cm.sum(axis=1, keepdims=True)
    shares = np.divide(cm, row_totals, out=np.zeros(cm.shape), where=row_totals > 0)
    labels = np.array([[f"{n}\n({s:.0%})" for n, s in zip(cm_row, share_row)]
                       for cm_row, share_row in zip(cm, shares)])

    pod = tp / (tp + fn) if (tp + fn) else 0.0
    far = fp / (tp + fp) if (tp + fp) else 0.0
    csi = tp / (tp + fp + fn) if (tp + fp + fn) else 0.0

    plt.figure(figsize=(7, 6))
    sns.heatmap(
        shares, annot=labels, fmt='', cmap='Reds', vmin=0, vmax=1,
        xticklabels=['Predicted stable', 'Predicted landslide'],
        yticklabels=['Stable', 'Landslide'],
        cbar_kws={'label': 'Share of actual class'},
    )
    plt.title(f"Holdout blocks (p >= {threshold})\n"
              f"POD {pod:.2f}   FAR {far:.2f}   CSI {csi:.2f}")
    plt.ylabel('Observed')
    plt.xlabel('Predicted')
    _save(output_path)
