#!/usr/bin/env python3
"""
Dependency resolution for the compile runner.

Checks that the toolchain, analyzers and make are on the search path and
installs missing ones through the host package manager.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from loguru import logger

from .core_types import DependencyError, InstallationError
from .utils import ProcessManager, SystemInfo

# Tools the runner is willing to install, in resolution order.
REQUIRED_TOOLS: tuple[str, ...] = (
    "gcc",
    "g++",
    "clang",
    "clang++",
    "make",
    "clang-tidy",
    "cppcheck",
)


@dataclass(frozen=True, slots=True)
class PackageManagerSpec:
    """How to drive one host package manager."""

    name: str
    install_command: tuple[str, ...]
    update_command: tuple[str, ...] = ()
    needs_sudo: bool = True
    package_names: Dict[str, str] = field(default_factory=dict)

    def package_for(self, tool: str) -> str:
        """Return the package providing ``tool`` under this manager."""
        return self.package_names.get(tool, tool)


PACKAGE_MANAGERS: tuple[PackageManagerSpec, ...] = (
    PackageManagerSpec(
        name="apt-get",
        install_command=("apt-get", "install", "-y"),
        update_command=("apt-get", "update"),
        package_names={"clang++": "clang"},
    ),
    PackageManagerSpec(
        name="dnf",
        install_command=("dnf", "install", "-y"),
        package_names={
            "g++": "gcc-c++",
            "clang++": "clang",
            "clang-tidy": "clang-tools-extra",
        },
    ),
    PackageManagerSpec(
        name="yum",
        install_command=("yum", "install", "-y"),
        package_names={
            "g++": "gcc-c++",
            "clang++": "clang",
            "clang-tidy": "clang-tools-extra",
        },
    ),
    PackageManagerSpec(
        name="pacman",
        install_command=("pacman", "-S", "--noconfirm", "--needed"),
        package_names={"g++": "gcc", "clang++": "clang", "clang-tidy": "clang"},
    ),
    PackageManagerSpec(
        name="zypper",
        install_command=("zypper", "--non-interactive", "install"),
        package_names={
            "g++": "gcc-c++",
            "clang++": "clang",
            "clang-tidy": "clang-tools",
        },
    ),
    PackageManagerSpec(
        name="apk",
        install_command=("apk", "add", "--no-cache"),
        package_names={"clang++": "clang", "clang-tidy": "clang-extra-tools"},
    ),
    PackageManagerSpec(
        name="brew",
        install_command=("brew", "install"),
        needs_sudo=False,
        package_names={
            "g++": "gcc",
            "clang": "llvm",
            "clang++": "llvm",
            "clang-tidy": "llvm",
        },
    ),
)


class DependencyResolver:
    """
    Verifies required tools and installs the missing ones.

    Re-running :meth:`resolve` when everything is present performs presence
    checks only.
    """

    def __init__(
        self,
        process_manager: Optional[ProcessManager] = None,
        system_info: Optional[SystemInfo] = None,
        package_managers: Sequence[PackageManagerSpec] = PACKAGE_MANAGERS,
    ) -> None:
        self.process_manager = process_manager or ProcessManager()
        self.system_info = system_info or SystemInfo()
        self.package_managers = tuple(package_managers)
        self._package_manager: Optional[PackageManagerSpec] = None
        self._updated = False

    def is_available(self, tool: str) -> bool:
        return self.system_info.find_executable(tool) is not None

    def detect_package_manager(self) -> Optional[PackageManagerSpec]:
        """Return the first supported package manager found on the host."""
        if self._package_manager is None:
            for spec in self.package_managers:
                if self.system_info.find_executable(spec.name) is not None:
                    logger.debug(f"Detected package manager: {spec.name}")
                    self._package_manager = spec
                    break
        return self._package_manager

    def _privileged(self, spec: PackageManagerSpec, command: Sequence[str]) -> List[str]:
        if (
            spec.needs_sudo
            and not self.system_info.is_root()
            and self.system_info.find_executable("sudo") is not None
        ):
            return ["sudo", *command]
        return list(command)

    def install(self, tool: str) -> None:
        """
        Install the package providing ``tool``.

        Raises:
            DependencyError: If no supported package manager is available
            InstallationError: If the package manager reports failure
        """
        spec = self.detect_package_manager()
        if spec is None:
            raise DependencyError(
                f"'{tool}' is missing and no supported package manager was found; "
                f"please install '{tool}' manually",
                error_code="NO_PACKAGE_MANAGER",
                tool=tool,
            )

        if spec.update_command and not self._updated:
            update = self.process_manager.run_command(
                self._privileged(spec, spec.update_command)
            )
            self._updated = True
            if update.failed:
                logger.warning(
                    f"{spec.name} index update failed (code {update.return_code}), "
                    "continuing with install"
                )

        package = spec.package_for(tool)
        logger.info(f"Installing '{tool}' (package '{package}') with {spec.name}")
        result = self.process_manager.run_command(
            self._privileged(spec, [*spec.install_command, package])
        )
        if result.failed:
            raise InstallationError(
                f"failed to install '{tool}' (package '{package}') with {spec.name}",
                error_code="INSTALL_FAILED",
                tool=tool,
                package=package,
                return_code=result.return_code,
                stderr=result.stderr,
            )

        if not self.is_available(tool):
            logger.warning(
                f"'{tool}' is still not on PATH after installing '{package}'"
            )

    def resolve(self, tools: Iterable[str] = REQUIRED_TOOLS) -> List[str]:
        """
        Ensure every tool is present, installing the missing ones in order.

        Returns:
            Tools for which an installation was performed
        """
        installed: List[str] = []
        for tool in tools:
            if self.is_available(tool):
                logger.debug(f"'{tool}' found")
                continue
            self.install(tool)
            installed.append(tool)

        if installed:
            logger.info(f"Installed: {', '.join(installed)}")
        else:
            logger.debug("All dependencies present")
        return installed
