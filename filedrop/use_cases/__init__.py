"""Application use cases for filedrop workflows."""

from .two_phase_upload import (
    RegisterRecordUseCase,
    StoreFileUseCase,
    TwoPhaseUploadUseCase,
    describe_error,
)

__all__ = [
    "RegisterRecordUseCase",
    "StoreFileUseCase",
    "TwoPhaseUploadUseCase",
    "describe_error",
]
