"""Base synthetic data generator with deterministic seeding."""

import hashlib
import random
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional


# Approximate coordinates for cell sites (for geo realism)
CELL_SITES = {
    "CELL-DEL-0042": (28.6139, 77.2090),
    "CELL-DEL-0107": (28.5355, 77.3910),
    "CELL-MUM-0011": (19.0760, 72.8777),
    "CELL-MUM-0230": (19.2183, 72.9781),
    "CELL-BLR-0015": (12.9716, 77.5946),
    "CELL-HYD-0077": (17.3850, 78.4867),
    "CELL-CHN-0031": (13.0827, 80.2707),
    "CELL-KOL-0054": (22.5726, 88.3639),
}

ACCESS_TYPES = ["2G", "3G", "4G", "5G"]
ACCESS_TYPE_WEIGHTS = [0.05, 0.15, 0.55, 0.25]

COMMON_DEST_PORTS = [53, 80, 443, 443, 443, 993, 5222, 8080]


class BaseGenerator(ABC):
    """Base class for synthetic data generators.

    All generators must be deterministic given the same seed.
    """

    def __init__(self, seed: int = 42):
        """Initialize generator with seed for reproducibility."""
        self.seed = seed
        self.rng = random.Random(seed)
        self._row_counter = 0

    def reset(self):
        """Reset generator to initial state."""
        self.rng = random.Random(self.seed)
        self._row_counter = 0

    def _digits(self, prefix: str, counter: int, length: int) -> str:
        """Deterministic numeric identifier of a fixed length."""
        raw = f"{prefix}_{self.seed}_{counter}"
        number = int(hashlib.sha256(raw.encode()).hexdigest(), 16)
        return str(number)[: length]

    def _random_choice(self, items: list) -> Any:
        """Deterministic random choice."""
        return self.rng.choice(items)

    def _random_int(self, low: int, high: int) -> int:
        """Deterministic random integer."""
        return self.rng.randint(low, high)

    def _random_float(self, low: float, high: float) -> float:
        """Deterministic random float."""
        return self.rng.uniform(low, high)

    def _random_bool(self, probability: float = 0.5) -> bool:
        """Deterministic random boolean with given probability."""
        return self.rng.random() < probability

    def generate_subscriber(self, index: int) -> Dict[str, str]:
        """Subscriber identity: number, device id and subscriber id."""
        return {
            "phoneNumber": "91" + self._digits("msisdn", index, 10),
            "imei": self._digits("imei", index, 15),
            "imsi": "404" + self._digits("imsi", index, 12),
        }

    def generate_private_ip(self) -> str:
        return f"10.{self._random_int(0, 255)}.{self._random_int(0, 255)}.{self._random_int(1, 254)}"

    def generate_public_ip(self) -> str:
        """Generate a plausible public IP address."""
        # Avoid reserved ranges
        first_octet = self._random_choice([
            self._random_int(1, 9),
            self._random_int(11, 126),
            self._random_int(128, 191),
            self._random_int(193, 223),
        ])
        return f"{first_octet}.{self._random_int(0, 255)}.{self._random_int(0, 255)}.{self._random_int(1, 254)}"

    @abstractmethod
    def generate_rows(
        self,
        count: int,
        start: datetime,
        subscribers: int = 10,
        destinations: Optional[List[str]] = None,
    ) -> List[Dict[str, Any]]:
        """Generate raw rows. Must be implemented by subclasses."""
        pass
