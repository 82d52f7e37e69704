"""Dart project inspection: toolchain detection and support package checks"""

import logging
import re
import shutil
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import yaml

from .errors import ConfigError, MissingExecutableError, PackageRequirementError

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r'(\d+)\.(\d+)\.(\d+)(?:-([0-9A-Za-z.-]+))?(?:\+[0-9A-Za-z.-]+)?')


@dataclass(frozen=True, order=True)
class Version:
    major: int
    minor: int
    patch: int
    # releases sort after their pre-releases
    is_release: bool = True
    pre: str = ""

    @classmethod
    def parse(cls, text: str) -> 'Version':
        m = _VERSION_RE.fullmatch(text.strip())
        if not m:
            raise ValueError(f"invalid version: {text!r}")
        major, minor, patch, pre = m.groups()
        return cls(int(major), int(minor), int(patch), pre is None, pre or "")

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        return base if self.is_release else f"{base}-{self.pre}"


@dataclass(frozen=True)
class VersionRange:
    """A pub version constraint; None bounds are unbounded"""
    lower: Optional[Version] = None
    lower_inclusive: bool = True
    upper: Optional[Version] = None
    upper_inclusive: bool = False

    @classmethod
    def parse(cls, text: str) -> 'VersionRange':
        """Accepts `any`, `^x.y.z`, exact versions and `>=`/`>`/`<=`/`<` clauses"""
        text = str(text).strip()
        if text in ('', 'any'):
            return cls()
        if text.startswith('^'):
            low = Version.parse(text[1:])
            if low.major > 0:
                high = Version(low.major + 1, 0, 0)
            else:
                high = Version(0, low.minor + 1, 0)
            return cls(low, True, high, False)

        lower, lower_inclusive, upper, upper_inclusive = None, True, None, False
        for clause in re.findall(r'(>=|<=|>|<)?\s*([^\s<>=]+)', text):
            op, version_text = clause
            version = Version.parse(version_text)
            if op in ('>=', '>'):
                lower, lower_inclusive = version, op == '>='
            elif op in ('<=', '<'):
                upper, upper_inclusive = version, op == '<='
            else:
                return cls(version, True, version, True)
        return cls(lower, lower_inclusive, upper, upper_inclusive)

    @property
    def is_any(self) -> bool:
        return self.lower is None and self.upper is None

    def contains(self, version: Version) -> bool:
        if self.lower is not None:
            if version < self.lower or (version == self.lower and not self.lower_inclusive):
                return False
        if self.upper is not None:
            if version > self.upper or (version == self.upper and not self.upper_inclusive):
                return False
        return True

    def is_subset_of(self, other: 'VersionRange') -> bool:
        if other.lower is not None:
            if self.lower is None or self.lower < other.lower:
                return False
            if self.lower == other.lower and self.lower_inclusive and not other.lower_inclusive:
                return False
        if other.upper is not None:
            if self.upper is None or self.upper > other.upper:
                return False
            if self.upper == other.upper and self.upper_inclusive and not other.upper_inclusive:
                return False
        return True

    def __str__(self) -> str:
        if self.is_any:
            return "any"
        parts = []
        if self.lower is not None:
            parts.append(f"{'>=' if self.lower_inclusive else '>'}{self.lower}")
        if self.upper is not None:
            parts.append(f"{'<=' if self.upper_inclusive else '<'}{self.upper}")
        return " ".join(parts)


FFI_REQUIREMENT = VersionRange.parse(">=2.0.1 <3.0.0")
FFIGEN_REQUIREMENT = VersionRange.parse(">=6.0.1 <8.0.0")


class DartToolchain(Enum):
    DART = 'dart'
    FLUTTER = 'flutter'

    def as_run_command(self) -> list[str]:
        """Prefix for `run <package>` invocations"""
        if self is DartToolchain.FLUTTER:
            return ['flutter', 'pub']
        return ['dart']


class DependencyMode(Enum):
    MAIN = 'dependencies'
    DEV = 'dev_dependencies'


class DartRepository:
    """A Dart or Flutter package root"""

    def __init__(self, root: Path, manifest: dict[str, Any]):
        self.root = root
        self.manifest = manifest
        deps = manifest.get('dependencies') or {}
        self.toolchain = DartToolchain.FLUTTER if 'flutter' in deps else DartToolchain.DART

    @classmethod
    def from_path(cls, root) -> 'DartRepository':
        root = Path(root)
        manifest_path = root / 'pubspec.yaml'
        if not manifest_path.exists():
            raise ConfigError(f"{root} is not a Dart package: pubspec.yaml not found")
        try:
            manifest = yaml.safe_load(manifest_path.read_text(encoding='utf-8')) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"cannot parse {manifest_path}: {exc}") from exc
        return cls(root, manifest)

    def toolchain_available(self) -> bool:
        return shutil.which(self.toolchain.value) is not None

    def ensure_toolchain(self) -> None:
        if not self.toolchain_available():
            raise MissingExecutableError(self.toolchain.value)

    def has_specified(self, package: str, mode: DependencyMode, requirement: VersionRange) -> None:
        """The manifest must declare `package` in `mode` within `requirement`"""
        deps = self.manifest.get(mode.value) or {}
        if package not in deps:
            raise PackageRequirementError(
                package, str(requirement), f"not declared in {mode.value} of pubspec.yaml")
        constraint = deps[package]
        if isinstance(constraint, dict):
            constraint = constraint.get('version')
        if constraint is None:
            # path/git/sdk source; the lock file check pins the real version
            logger.debug("%s has no version constraint in pubspec.yaml", package)
            return
        try:
            declared = VersionRange.parse(str(constraint))
        except ValueError as exc:
            raise PackageRequirementError(package, str(requirement), str(exc)) from exc
        if declared.is_any:
            return
        if not declared.is_subset_of(requirement):
            raise PackageRequirementError(
                package, str(requirement), f"pubspec.yaml declares {constraint}")

    def has_installed(self, package: str, mode: DependencyMode, requirement: VersionRange) -> None:
        """pubspec.lock must resolve `package` to a version within `requirement`"""
        lock_path = self.root / 'pubspec.lock'
        if not lock_path.exists():
            raise PackageRequirementError(
                package, str(requirement), "pubspec.lock not found; run `pub get` first")
        lock = yaml.safe_load(lock_path.read_text(encoding='utf-8')) or {}
        entry = (lock.get('packages') or {}).get(package)
        if not entry or 'version' not in entry:
            raise PackageRequirementError(package, str(requirement), "not installed")
        try:
            version = Version.parse(str(entry['version']))
        except ValueError as exc:
            raise PackageRequirementError(package, str(requirement), str(exc)) from exc
        if not requirement.contains(version):
            raise PackageRequirementError(package, str(requirement), f"installed version is {version}")
        logger.debug("%s %s (%s) satisfies %s", package, version, mode.value, requirement)
