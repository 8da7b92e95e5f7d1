from .admission import (
    AdmissionController as AdmissionController,
    RateEntry as RateEntry,
)
