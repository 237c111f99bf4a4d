# tests/test_visualize.py
from landslide_cv.evaluation.visualize import plot_confusion_matrix_heatmap


def test_confusion_heatmap_written(tmp_path):
    out = tmp_path / "confusion.png"
    plot_confusion_matrix_heatmap(tp=12, fp=4, tn=30, fn=6, threshold=0.5, output_path=str(out))
    assert out.exists()


def test_confusion_heatmap_without_landslides(tmp_path):
    out = tmp_path / "confusion_empty.png"
    plot_confusion_matrix_heatmap(tp=0, fp=3, tn=20, fn=0, threshold=0.5, output_path=str(out))
    assert out.exists()
