from __future__ import annotations

import logging
import os
import ssl
import subprocess
import urllib.error
import urllib.request
from typing import Dict

logger = logging.getLogger(__name__)

_BUCKET = "https://storage.googleapis.com/mediapipe-models"

MODEL_ASSET_URLS: Dict[str, str] = {
    "hand_landmarker": f"{_BUCKET}/hand_landmarker/hand_landmarker/float16/latest/hand_landmarker.task",
    "face_landmarker": f"{_BUCKET}/face_landmarker/face_landmarker/float16/latest/face_landmarker.task",
}


def model_asset_path(name: str, model_dir: str) -> str:
    if name not in MODEL_ASSET_URLS:
        raise ValueError(f"Unknown model asset '{name}'. Available: {list(MODEL_ASSET_URLS)}")
    return os.path.join(model_dir, f"{name}.task")


def _ssl_context() -> ssl.SSLContext:
    # python.org macOS builds can lack root certificates; prefer certifi's bundle.
    try:
        import certifi  # type: ignore
    except ImportError:
        return ssl.create_default_context()
    return ssl.create_default_context(cafile=certifi.where())


def _remove_partial(path: str) -> None:
    if os.path.exists(path):
        os.remove(path)


def ensure_model_asset(name: str, model_dir: str = "models", *, timeout_s: int = 30) -> str:
    """
    Path to the MediaPipe Tasks model `name`, downloading it on first use.

    Tries urllib first, then `curl`, which often works when Python's
    certificate store is misconfigured.
    """

    path = model_asset_path(name, model_dir)
    if os.path.exists(path):
        return path

    url = MODEL_ASSET_URLS[name]
    os.makedirs(model_dir or ".", exist_ok=True)
    logger.info("Downloading %s model to %s", name, path)

    try:
        with urllib.request.urlopen(url, context=_ssl_context(), timeout=timeout_s) as r, open(path, "wb") as f:
            f.write(r.read())
        return path
    except (urllib.error.URLError, OSError) as e:
        logger.warning("urllib download of %s failed (%s); trying curl", name, e)
        _remove_partial(path)
        first_error = e

    try:
        proc = subprocess.run(
            ["curl", "-L", "-f", "-o", path, url],
            check=False,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
    except FileNotFoundError:
        proc = None
    if proc is not None and proc.returncode == 0 and os.path.getsize(path) > 0:
        return path
    _remove_partial(path)

    curl_err = f"\n\ncurl stderr:\n{proc.stderr.strip()}\n" if proc is not None else ""
    raise RuntimeError(
        f"Missing MediaPipe Tasks model '{name}' and auto-download failed.\n\n"
        f"Expected model at: {path}\n"
        f"URL: {url}\n\n"
        "Download it manually:\n"
        f'  mkdir -p "{model_dir or "."}"\n'
        f'  curl -L -o "{path}" "{url}"\n'
        f"{curl_err}"
    ) from first_error
