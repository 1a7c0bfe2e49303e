import io
from dataclasses import dataclass, field
from typing import Callable, Optional

from data_processing import (
    MeteringDataset,
    MeteringIngestError,
    dprint,
    read_metering_csv,
)
from sample_data import generate_sample_dataset


STATUS_IDLE = "idle"
STATUS_PARSING = "parsing"
STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"

SAMPLE_SOURCE_NAME = "Sample data"


class _MemoryFile(io.BytesIO):
    def __init__(self, name: str, data: bytes):
        super().__init__(data)
        self.name = name


@dataclass
class DashboardSession:
    """Dataset currently on screen plus the outcome of the last upload.

    A failed upload never touches ``dataset``; a successful one replaces it
    wholesale.
    """

    dataset: MeteringDataset = field(default_factory=MeteringDataset)
    source_name: str = ""
    status: str = STATUS_IDLE
    error: Optional[str] = None
    parser: Callable[[object], MeteringDataset] = read_metering_csv

    @classmethod
    def with_sample_data(cls, seed: Optional[int] = None) -> "DashboardSession":
        return cls(dataset=generate_sample_dataset(seed=seed), source_name=SAMPLE_SOURCE_NAME)

    @property
    def is_parsing(self) -> bool:
        return self.status == STATUS_PARSING

    def load_upload(self, name: str, data: bytes) -> bool:
        """Parse an uploaded file; return True when it replaced the dataset."""

        if self.is_parsing:
            raise RuntimeError("An upload is already being processed.")

        self.status = STATUS_PARSING
        try:
            dataset = self.parser(_MemoryFile(name, data))
        except MeteringIngestError as exc:
            dprint(f"[DashboardSession] {name} rejected: {exc}")
            self.status = STATUS_FAILED
            self.error = str(exc)
            return False
        except Exception:
            self.status = STATUS_FAILED
            self.error = "Could not parse the CSV file. Please check the format and delimiter."
            raise

        self.dataset = dataset
        self.source_name = name
        self.status = STATUS_SUCCESS
        self.error = None
        return True

    def reset(self, seed: Optional[int] = None) -> None:
        self.dataset = generate_sample_dataset(seed=seed)
        self.source_name = SAMPLE_SOURCE_NAME
        self.status = STATUS_IDLE
        self.error = None
