"""Send and receive stages of the message transform pipeline."""

from .inbound import DECRYPTED_INDICATOR, InboundProcessor
from .presend import PreSendInterceptor
from .results import StageOutcome, StageResult

__all__ = [
    "DECRYPTED_INDICATOR",
    "InboundProcessor",
    "PreSendInterceptor",
    "StageOutcome",
    "StageResult",
]
