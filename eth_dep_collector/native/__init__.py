"""Native (FFI) dependency detection."""

from eth_dep_collector.native.patterns import (
    extract_cgo_libraries,
    extract_dllimport_libraries,
    extract_jni_libraries,
    is_system_library,
)
from eth_dep_collector.native.scanner import NativeScanKind, scan_native_references

__all__ = [
    "NativeScanKind",
    "extract_cgo_libraries",
    "extract_dllimport_libraries",
    "extract_jni_libraries",
    "is_system_library",
    "scan_native_references",
]
