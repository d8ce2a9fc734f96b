"""Utility modules for certflow."""

from certflow.utils.exceptions import CertflowError, ConfigurationError
from certflow.utils.masking import mask_email, mask_phone, mask_string

__all__ = [
    "CertflowError",
    "ConfigurationError",
    "mask_email",
    "mask_phone",
    "mask_string",
]
