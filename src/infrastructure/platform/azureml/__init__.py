"""Azure ML specific utilities: workspace, compute, data assets and jobs.

Imported lazily so modules that only need the collector do not require the
Azure SDK at import time.
"""

__all__ = [
    "create_ml_client",
    "ensure_compute_cluster",
    "upload_data_asset",
    "download_job_outputs",
    "submit_and_wait_for_job",
]

_LOCATIONS = {
    "create_ml_client": ".workspace",
    "ensure_compute_cluster": ".compute",
    "upload_data_asset": ".data_assets",
    "download_job_outputs": ".data_assets",
    "submit_and_wait_for_job": ".jobs",
}


def __getattr__(name: str):
    """Lazy import for Azure ML functions."""
    if name in _LOCATIONS:
        import importlib

        module = importlib.import_module(_LOCATIONS[name], __name__)
        return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
