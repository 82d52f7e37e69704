"""Error types raised by the bridge generator"""


class BridgeError(Exception):
    """Base class for every error surfaced by bridgegen"""


class ConfigError(BridgeError):
    """Invalid or incomplete generator configuration"""


class IRError(BridgeError):
    """Malformed IR document or unknown type reference"""


class PreconditionError(BridgeError):
    """The Dart project or toolchain is not ready for generation"""


class MissingExecutableError(PreconditionError):
    def __init__(self, executable: str):
        super().__init__(f"Executable not found: {executable}")
        self.executable = executable


class PackageRequirementError(PreconditionError):
    """A support package is missing or outside its accepted version range"""

    def __init__(self, package: str, requirement: str, reason: str):
        super().__init__(f"Package '{package}' must satisfy {requirement}: {reason}")
        self.package = package
        self.requirement = requirement
        self.reason = reason


class ExternalToolError(BridgeError):
    """An external tool (cbindgen, rustfmt, dart format) exited with failure"""

    def __init__(self, tool: str, stderr: str):
        super().__init__(f"{tool} failed: {stderr.strip()}")
        self.tool = tool
        self.stderr = stderr


class BindingGeneratorToolchainError(BridgeError):
    """ffigen could not locate libclang"""

    def __init__(self):
        super().__init__(
            "ffigen could not find the LLVM/libclang dynamic library. "
            "Install LLVM or point to it with --llvm-path."
        )


class GenericToolFailure(BridgeError):
    """Any other non-zero exit, carrying both captured streams"""

    def __init__(self, tool: str, stdout: str, stderr: str):
        super().__init__(f"{tool} failed:\nstderr: {stderr}\nstdout: {stdout}")
        self.tool = tool
        self.stdout = stdout
        self.stderr = stderr
