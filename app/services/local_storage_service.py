"""On-disk receipt store for guest users (one JSON file per guest)."""

import json
import logging
import os
import re
import threading
import uuid
from pathlib import Path
from typing import List

from pydantic import ValidationError

from app.config import get_settings
from app.core.exceptions import ReceiptConflictError, ReceiptSourceError
from app.schemas.receipt import Receipt, ReceiptCreate

logger = logging.getLogger(__name__)

GUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")

# Serializes read-modify-write of guest files across worker threads
_write_lock = threading.Lock()


class LocalStorageService:
    """Stores guest receipts as JSON lists under a base directory."""

    def __init__(self, base_dir: str | Path | None = None):
        self.base_dir = Path(base_dir or get_settings().LOCAL_STORAGE_DIR)

    def _path_for(self, guest_id: str) -> Path:
        if not GUEST_ID_PATTERN.match(guest_id):
            raise ReceiptSourceError(
                "Invalid guest id", details={"guest_id": guest_id}
            )
        return self.base_dir / f"{guest_id}.json"

    def get_receipts(self, guest_id: str) -> List[Receipt]:
        """Load all receipts stored for a guest. Missing file means no receipts."""
        path = self._path_for(guest_id)
        if not path.exists():
            return []

        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            return [Receipt.model_validate(entry) for entry in raw]
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            raise ReceiptSourceError(
                f"Could not decode local receipts for guest {guest_id}",
                details={"error_type": "decoding", "error": str(e)},
            ) from e
        except OSError as e:
            raise ReceiptSourceError(
                f"Could not read local receipts for guest {guest_id}",
                details={"error_type": "storage", "error": str(e)},
            ) from e

    def add_receipt(self, guest_id: str, data: ReceiptCreate) -> Receipt:
        """Append a receipt to the guest's file and return it with its id.

        Raises ReceiptConflictError when the guest already has a receipt with
        the requested id.
        """
        with _write_lock:
            receipts = self.get_receipts(guest_id)
            if data.id and any(r.id == data.id for r in receipts):
                raise ReceiptConflictError(
                    f"Receipt {data.id} already exists", details={"receipt_id": data.id}
                )

            receipt = Receipt(
                id=data.id or str(uuid.uuid4()),
                **data.model_dump(exclude={"id"}),
            )
            receipts.append(receipt)

            path = self._path_for(guest_id)
            tmp_path = path.with_suffix(".json.tmp")
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                payload = [r.model_dump(mode="json") for r in receipts]
                tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
                os.replace(tmp_path, path)
            except OSError as e:
                raise ReceiptSourceError(
                    f"Could not save local receipt for guest {guest_id}",
                    details={"error_type": "storage", "error": str(e)},
                ) from e

        logger.info(f"Receipt saved to local storage: guest_id={guest_id}, receipt_id={receipt.id}")
        return receipt
