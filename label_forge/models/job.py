"""
Print Job Model
===============

Record of one compiled label batch sent to a printer.
"""

import uuid
from datetime import datetime
from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any


@dataclass
class PrintJob:
    """Print job state."""

    # Identification
    id: str = field(default_factory=lambda: f"JOB-{str(uuid.uuid4())[:8].upper()}")
    printer_id: str = ""

    # Job details
    job_type: str = "label"  # label, calibration, feed
    document_name: str = ""
    dialect: str = ""
    copies: int = 1
    bytes_sent: int = 0

    # Status
    status: str = "pending"  # pending, printing, completed, failed
    error_message: Optional[str] = None

    # Timestamps
    created_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        for key in ['created_at', 'started_at', 'completed_at']:
            if data.get(key):
                data[key] = data[key].isoformat()
        return data

    def start(self):
        """Mark job as started."""
        self.status = "printing"
        self.started_at = datetime.now()

    def complete(self, bytes_sent: int):
        """Mark job as completed."""
        self.status = "completed"
        self.bytes_sent = bytes_sent
        self.completed_at = datetime.now()

    def fail(self, error: str):
        """Mark job as failed."""
        self.status = "failed"
        self.completed_at = datetime.now()
        self.error_message = error
