"""Custom exceptions for certflow."""


class CertflowError(Exception):
    """Base exception for all certflow errors."""

    pass


class ConfigurationError(CertflowError):
    """Error in configuration or settings."""

    pass
