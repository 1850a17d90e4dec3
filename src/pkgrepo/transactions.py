# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Transaction Logger

Single responsibility: Log and retrieve install/delete transactions
(append-only JSONL)
"""

import json
import logging
import threading
import uuid
from datetime import datetime, UTC
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import TransactionOperation, TransactionRecord, TransactionStatus

logger = logging.getLogger(__name__)


class TransactionLogger:
    """Manages transaction logging to append-only JSONL file"""

    def __init__(self, log_file: Path):
        """
        Initialize transaction logger.

        Args:
            log_file: Path to the JSONL log
        """
        self.log_file = Path(log_file)
        self._lock = threading.Lock()

        if not self.log_file.exists():
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            self.log_file.touch()

    def create_transaction(self, operation: TransactionOperation, target: str) -> TransactionRecord:
        """
        Create a new transaction record.

        Args:
            operation: Type of operation
            target: Install source or delete argument

        Returns:
            New transaction record
        """
        return TransactionRecord(
            id=f"txn-{uuid.uuid4().hex[:12]}",
            operation=operation,
            target=target,
            status=TransactionStatus.PENDING,
            started_at=datetime.now(UTC)
        )

    def log(self, transaction: TransactionRecord):
        """Append transaction to JSONL log file"""
        log_line = json.dumps(transaction.to_dict())
        with self._lock, open(self.log_file, "a", encoding="utf-8") as f:
            f.write(log_line + "\n")

    def complete(self, transaction: TransactionRecord, package_id: Optional[str] = None):
        transaction.status = TransactionStatus.COMPLETED
        transaction.package_id = package_id
        transaction.completed_at = datetime.now(UTC)
        self.log(transaction)

    def fail(self, transaction: TransactionRecord, error: Exception, rolled_back: bool = False):
        transaction.status = TransactionStatus.ROLLED_BACK if rolled_back else TransactionStatus.FAILED
        transaction.error = str(error)
        transaction.completed_at = datetime.now(UTC)
        self.log(transaction)

    def _read_all(self) -> List[Dict[str, Any]]:
        if not self.log_file.exists():
            return []

        transactions = []
        with open(self.log_file, "r", encoding="utf-8") as f:
            for line in f:
                if not line.strip():
                    continue
                try:
                    transactions.append(json.loads(line))
                except json.JSONDecodeError as e:
                    logger.error(f"Failed to parse transaction log line: {e}")
        return transactions

    def list_transactions(self, limit: int = 50) -> List[Dict[str, Any]]:
        """
        List recent transaction log entries.

        Args:
            limit: Maximum number of entries to return

        Returns:
            List of transaction records (most recent first)
        """
        return list(reversed(self._read_all()))[:limit]

    def get_transaction(self, transaction_id: str) -> Optional[Dict[str, Any]]:
        """
        Get the latest logged state of a transaction.

        Args:
            transaction_id: Transaction ID

        Returns:
            Transaction record or None if not found
        """
        for txn in reversed(self._read_all()):
            if txn.get("id") == transaction_id:
                return txn
        return None
