"""
Proof Storage

Stores payment / delivery proof images on the local filesystem under
PROOF_UPLOAD_DIR and hands back a public reference (URL path) for them.
Type and size are checked before anything is written.
"""
import os
import uuid
from datetime import datetime
from typing import Optional, Tuple, Union

from app.core.config import settings
from app.exceptions import RemitDeskException, UploadError
from app.logging_config import get_logger
from app.services.workflow_preconditions import validate_proof_file
from app.services.workflow_types import ProofFile

logger = get_logger(__name__)

_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


class ProofStorage:
    """Local-disk blob store for proof images."""

    def __init__(self, base_dir: Optional[str] = None, public_base_url: Optional[str] = None):
        self.base_dir = base_dir or settings.PROOF_UPLOAD_DIR
        self.public_base_url = (public_base_url or settings.PROOF_PUBLIC_BASE_URL).rstrip("/")

    def _safe_filename(self, proof: ProofFile, prefix: str) -> str:
        """Generate a safe, unique filename"""
        mime = (proof.content_type or "").split(";")[0].strip().lower()
        ext = _EXTENSIONS.get(mime) or os.path.splitext(proof.filename or "")[1].lower() or ".bin"
        timestamp = datetime.utcnow().strftime('%Y%m%d_%H%M%S')
        unique_id = str(uuid.uuid4())[:8]
        return f"{prefix}_{timestamp}_{unique_id}{ext}"

    def upload(
        self, proof: ProofFile, folder: str, prefix: str
    ) -> Tuple[bool, Union[str, RemitDeskException]]:
        """
        Validate and store one proof image.

        Args:
            proof: The uploaded file
            folder: Sub-folder (e.g. ``orders/delivery``)
            prefix: Filename prefix, usually the entity number

        Returns:
            (True, reference) on success, (False, error) otherwise
        """
        error = validate_proof_file(proof.filename, proof.content_type, proof.size)
        if error:
            return False, error

        safe_filename = self._safe_filename(proof, prefix)
        target_dir = os.path.join(self.base_dir, folder)
        try:
            os.makedirs(target_dir, exist_ok=True)
            with open(os.path.join(target_dir, safe_filename), "wb") as f:
                f.write(proof.content)
        except OSError as e:
            logger.error(f"Failed to store proof {safe_filename}: {e}")
            return False, UploadError(f"Could not store proof image: {e.strerror or e}", filename=proof.filename)

        reference = f"{self.public_base_url}/{folder}/{safe_filename}"
        logger.info(f"Saved proof {safe_filename} ({proof.size} bytes) to {target_dir}")
        return True, reference

    def delete(self, reference: Optional[str]) -> bool:
        """
        Remove a proof stored by ``upload``.

        Only references under this store's public URL are touched. Returns
        True when a file was removed; failures are logged, not raised.
        """
        prefix = f"{self.public_base_url}/"
        if not reference or not reference.startswith(prefix):
            return False
        base = os.path.abspath(self.base_dir)
        path = os.path.abspath(os.path.join(base, reference[len(prefix):]))
        if not path.startswith(base + os.sep):
            logger.warning(f"Refusing to delete proof outside {base}: {reference}")
            return False
        try:
            os.remove(path)
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Failed to delete proof {path}: {e}")
            return False
        logger.info(f"Deleted unused proof {path}")
        return True
