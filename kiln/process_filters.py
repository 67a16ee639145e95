"""External-process filters for Kiln.

This module contains filters that hand asset content to an external
binary. Each filter handles a single tool, following the Single
Responsibility Principle (SRP); the shared plumbing (temp files, process
invocation, timeout and error detection) lives in ``BaseProcessFilter``.

Key classes:
- BaseProcessFilter: Runs a binary over the asset content.
- UglifyJs3Filter: Minifies JavaScript with UglifyJS 3.
- TerserFilter: Minifies JavaScript with terser.
- TailwindCSSFilter: Compiles Tailwind CSS.
- FilterError: Raised when a tool fails.
- ConfigurationError: Raised when a tool's binary path is not configured.
"""

from __future__ import annotations

import contextlib
import logging
import os
import re
import subprocess
import tempfile
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from .filters import BaseFilter

if TYPE_CHECKING:
    from .protocols import Asset

logger = logging.getLogger(__name__)


class FilterError(Exception):
    """Error raised when an external tool fails.

    Attributes:
        input: The content handed to the tool.
        output: Captured standard output.
        error_output: Captured standard error.
        exit_code: The tool's exit status, ``None`` when it timed out.
    """

    def __init__(
        self,
        message: str,
        input: str | None = None,
        output: str = "",
        error_output: str = "",
        exit_code: int | None = None,
    ):
        self.input = input
        self.output = output
        self.error_output = error_output
        self.exit_code = exit_code
        if input:
            message = f"{message}\n\nInput:\n{input}"
        super().__init__(message)

    @classmethod
    def from_process(cls, result: subprocess.CompletedProcess, input: str) -> FilterError:
        """Build an error describing a finished process."""
        message = "An error occurred while running:\n" + " ".join(map(str, result.args))
        error_output = result.stderr or ""
        output = result.stdout or ""
        if error_output:
            message += "\n\nError Output:\n" + error_output.replace("\r", "")
        if output:
            message += "\n\nOutput:\n" + output.replace("\r", "")
        return cls(
            message,
            input=input,
            output=output,
            error_output=error_output,
            exit_code=result.returncode,
        )


class ConfigurationError(Exception):
    """Error raised when a filter is missing required configuration."""


def _create_temporary_file(prefix: str, content: str = "") -> str:
    fd, path = tempfile.mkstemp(prefix=prefix)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(content)
    return path


class BaseProcessFilter(BaseFilter):
    """Base class for filters that run an external binary.

    ``run_process`` writes the input to a temp file, substitutes the
    ``{INPUT}`` and ``{OUTPUT}`` placeholders in the arguments with temp
    file paths, runs the binary and returns its output. Temp files are
    removed however the call ends.

    Class attributes:
        binary_name: Executable name used for discovery.
        error_marker: Text that marks a failure even on a zero exit.
        use_input_as_output: The tool rewrites its input file in place.
        delete_output_file: The tool refuses an existing output file.

    Attributes:
        binary_path: Path of the binary to run.
        timeout: Seconds before the process is considered hung.
        env: Extra environment variables on top of the inherited ones.
    """

    binary_name = ""
    error_marker = "Error: "
    use_input_as_output = False
    delete_output_file = False

    def __init__(
        self,
        binary_path: str | None = None,
        timeout: float | None = None,
        env: Mapping[str, str] | None = None,
    ):
        self.binary_path = binary_path
        self.timeout = timeout
        self.env = dict(env or {})

    def get_path_args(self) -> list[str]:
        """Return the leading arguments that invoke the binary."""
        return [self.binary_path] if self.binary_path else []

    def _process_env(self) -> dict[str, str] | None:
        if not self.env:
            return None
        return {**os.environ, **self.env}

    def run_process(self, input: str, arguments: Iterable[str] = ()) -> str:
        """Run the binary over ``input`` and return what it produced.

        Args:
            input: Content to hand to the tool.
            arguments: Extra arguments, may contain ``{INPUT}``/``{OUTPUT}``.

        Returns:
            The output file's content when ``{OUTPUT}`` was used, the input
            file's content when ``use_input_as_output`` is set, otherwise
            the process's standard output.

        Raises:
            ConfigurationError: If no binary path is configured.
            FilterError: On a non-zero exit, a timeout, or an error marker
                in the output.
        """
        path_args = self.get_path_args()
        if not path_args:
            raise ConfigurationError(
                f"The binary path for {type(self).__name__} has not been set."
            )

        prefix = re.sub(r"\W", "", type(self).__name__)
        input_file = _create_temporary_file(f"{prefix}-input", input)
        output_file = _create_temporary_file(f"{prefix}-output")
        try:
            if self.delete_output_file:
                os.unlink(output_file)

            output_to_file = False
            resolved = []
            for arg in arguments:
                arg = arg.replace("{INPUT}", input_file)
                if "{OUTPUT}" in arg:
                    arg = arg.replace("{OUTPUT}", output_file)
                    output_to_file = True
                resolved.append(arg)

            cmd = path_args + resolved
            logger.debug("Running %s", " ".join(cmd))
            try:
                result = subprocess.run(
                    cmd,
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                    env=self._process_env(),
                )
            except subprocess.TimeoutExpired as exc:
                raise FilterError(
                    f"{' '.join(cmd)} timed out after {self.timeout} seconds",
                    input=input,
                ) from exc

            if result.returncode != 0:
                raise FilterError.from_process(result, input)

            if self.use_input_as_output:
                output = _read(input_file)
            elif output_to_file:
                output = _read(output_file)
            else:
                output = result.stdout or ""

            if self.error_marker and self.error_marker in output:
                raise FilterError.from_process(result, input)

            return output
        finally:
            for path in (input_file, output_file):
                with contextlib.suppress(FileNotFoundError):
                    os.unlink(path)


def _read(path: str) -> str:
    with open(path, encoding="utf-8") as f:
        return f.read()


class UglifyJs3Filter(BaseProcessFilter):
    """Minifies JavaScript at dump time with UglifyJS 3.

    Attributes:
        node_bin: Optional node binary to run uglifyjs with.
        compress: Enable compression; a string is passed as compress options.
        beautify: Pretty-print the output.
        mangle: Mangle local names.
        comments: Keep comments; True keeps all, a string is a filter regex.
        wrap: Wrap everything in a function exporting this global name.
        defines: ``NAME=value`` constants for dead-code removal.
        unsafe: Allow unsafe compress transformations.
    """

    binary_name = "uglifyjs"

    def __init__(
        self,
        uglifyjs_bin: str | None = None,
        node_bin: str | None = None,
        timeout: float | None = None,
        env: Mapping[str, str] | None = None,
        compress: bool | str = False,
        beautify: bool = False,
        mangle: bool = False,
        comments: bool | str | None = None,
        wrap: str | None = None,
        defines: Iterable[str] = (),
        unsafe: bool = False,
    ):
        super().__init__(uglifyjs_bin, timeout, env)
        self.node_bin = node_bin
        self.compress = compress
        self.beautify = beautify
        self.mangle = mangle
        self.comments = comments
        self.wrap = wrap
        self.defines = list(defines)
        self.unsafe = unsafe

    def get_path_args(self) -> list[str]:
        if not self.binary_path:
            return []
        if self.node_bin:
            return [self.node_bin, self.binary_path]
        return [self.binary_path]

    def build_arguments(self) -> list[str]:
        args: list[str] = []

        compress_options = []
        if isinstance(self.compress, str) and self.compress:
            compress_options.append(self.compress)
        if self.unsafe:
            compress_options.append("unsafe")
        if self.compress or compress_options:
            args.append("--compress")
            if compress_options:
                args.append(",".join(compress_options))

        if self.beautify:
            args.append("--beautify")
        if self.mangle:
            args.append("--mangle")
        if self.comments:
            args.extend(["--comments", "all" if self.comments is True else self.comments])
        if self.wrap:
            args.extend(["--wrap", self.wrap])
        if self.defines:
            args.extend(["--define", ",".join(self.defines)])

        args.extend(["-o", "{OUTPUT}", "{INPUT}"])
        return args

    def filter_dump(self, asset: Asset) -> None:
        asset.set_content(self.run_process(asset.content or "", self.build_arguments()))


class TerserFilter(BaseProcessFilter):
    """Minifies JavaScript at dump time with terser."""

    binary_name = "terser"

    def __init__(
        self,
        terser_bin: str | None = None,
        timeout: float | None = None,
        env: Mapping[str, str] | None = None,
        compress: bool = True,
        mangle: bool = True,
    ):
        super().__init__(terser_bin, timeout, env)
        self.compress = compress
        self.mangle = mangle

    def filter_dump(self, asset: Asset) -> None:
        args = ["{INPUT}"]
        if self.compress:
            args.append("-c")
        if self.mangle:
            args.append("-m")
        args.extend(["-o", "{OUTPUT}"])
        asset.set_content(self.run_process(asset.content or "", args))


class TailwindCSSFilter(BaseProcessFilter):
    """Compiles Tailwind CSS at load time with the Tailwind CLI.

    Attributes:
        content_globs: Files Tailwind scans for class names.
        minify: Pass ``--minify``.
    """

    binary_name = "tailwindcss"

    def __init__(
        self,
        tailwind_bin: str | None = None,
        timeout: float | None = None,
        env: Mapping[str, str] | None = None,
        content_globs: Iterable[str] = (),
        minify: bool = True,
    ):
        super().__init__(tailwind_bin, timeout, env)
        self.content_globs = list(content_globs)
        self.minify = minify

    def filter_load(self, asset: Asset) -> None:
        args = ["-i", "{INPUT}", "-o", "{OUTPUT}"]
        if self.minify:
            args.append("--minify")
        if self.content_globs:
            args.extend(["--content", ",".join(self.content_globs)])
        asset.set_content(self.run_process(asset.content or "", args))
