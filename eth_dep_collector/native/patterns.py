"""
Native library references in source code.

Each extractor is a pure function over one file's text and returns library
names in first-seen order.
"""

import re
import threading

# Directives such as "#cgo LDFLAGS: -lfoo" or "#cgo linux,amd64 CFLAGS: -I${SRCDIR}/foo"
_CGO_DIRECTIVE_RE = re.compile(r"#cgo\s+(?:[\w,!]+\s+)*?([\w-]+):\s*(.+)")
_CGO_LINK_RE = re.compile(r"(?:^|\s)-l([A-Za-z0-9_+.-]+)")
_CGO_INCLUDE_RE = re.compile(r"(?:^|\s)-I(\S+)")
_LOAD_LIBRARY_RE = re.compile(r"System\.loadLibrary\(\s*\"([^\"]+)\"\s*\)")
_DLL_IMPORT_RE = re.compile(r"\[\s*(?:DllImport|LibraryImport)\s*\(\s*\"([^\"]+)\"")

# Include path segments that say nothing about the library
_GENERIC_PATH_SEGMENTS = {"", ".", "..", "include", "src", "inc", "lib", "libs", "c", "csrc"}

_SHARED_OBJECT_RE = re.compile(r"\.(so(\.\d+)*|dylib|dll|a|lib)$", re.IGNORECASE)

_SYSTEM_LIBRARY_NAMES = (
    # glibc / POSIX runtime
    "c",
    "m",
    "dl",
    "rt",
    "pthread",
    "util",
    "resolv",
    "crypt",
    "nsl",
    # compiler runtimes
    "stdc++",
    "c++",
    "gcc",
    "gcc_s",
    "atomic",
    # macOS
    "system",
    "corefoundation",
    "security",
    # Windows
    "kernel32",
    "user32",
    "advapi32",
    "ntdll",
    "ws2_32",
    "bcrypt",
    "msvcrt",
    "ucrtbase",
    "psapi",
    "iphlpapi",
    "shell32",
    "ole32",
)

_SYSTEM_LIBRARIES: frozenset[str] | None = None
_SYSTEM_LOCK = threading.Lock()


def _unique(names: list[str]) -> list[str]:
    return list(dict.fromkeys(names))


def _include_library(path: str) -> str | None:
    """Last meaningful segment of an include path (``${SRCDIR}/libfoo/include`` -> ``libfoo``)."""
    path = path.strip("\"'").replace("${SRCDIR}", "")
    for segment in reversed(path.split("/")):
        if segment.lower() not in _GENERIC_PATH_SEGMENTS and "$" not in segment:
            return segment
    return None


def extract_cgo_libraries(text: str) -> list[str]:
    """Libraries named by ``-l``/``-I`` flags and ``pkg-config`` in ``#cgo`` directives."""
    names: list[str] = []
    for directive in _CGO_DIRECTIVE_RE.finditer(text):
        kind, flags = directive.groups()
        if kind == "pkg-config":
            names.extend(p for p in flags.split() if not p.startswith("-"))
            continue
        for include in _CGO_INCLUDE_RE.findall(flags):
            name = _include_library(include)
            if name:
                names.append(name)
        names.extend(_CGO_LINK_RE.findall(flags))
    return _unique(names)


def extract_jni_libraries(text: str) -> list[str]:
    """Libraries loaded with ``System.loadLibrary("name")``."""
    return _unique(_LOAD_LIBRARY_RE.findall(text))


def extract_dllimport_libraries(text: str) -> list[str]:
    """Libraries named in ``[DllImport("name")]`` / ``[LibraryImport("name")]``."""
    return _unique(_DLL_IMPORT_RE.findall(text))


def library_key(name: str) -> str:
    """Comparable form of a library name: no ``lib`` prefix or shared-object suffix."""
    key = _SHARED_OBJECT_RE.sub("", name.strip()).lower()
    if key.startswith("lib") and len(key) > 3:
        key = key[3:]
    return key


def get_system_libraries() -> frozenset[str]:
    """OS-bundled libraries, built once."""
    global _SYSTEM_LIBRARIES
    if _SYSTEM_LIBRARIES is None:
        with _SYSTEM_LOCK:
            if _SYSTEM_LIBRARIES is None:
                _SYSTEM_LIBRARIES = frozenset(_SYSTEM_LIBRARY_NAMES)
    return _SYSTEM_LIBRARIES


def is_system_library(name: str) -> bool:
    """True for kernel/runtime libraries present on every target platform."""
    return library_key(name) in get_system_libraries()
