from dataclasses import dataclass
from typing import Optional

@dataclass
class KeelConfig:
    region_name: Optional[str] = None
    compartment_id: Optional[str] = None
    poll_interval: float = 1.0
    work_request_timeout: float = 1800.0
    page_size: int = 20
