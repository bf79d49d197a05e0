"""A preprocessor that shells out to an external program."""

from __future__ import annotations

import io
import json
import logging
import shlex
import subprocess

from bookpress.preprocess.base import Preprocessor, PreprocessorContext

logger = logging.getLogger(__name__)


class CmdPreprocessor(Preprocessor):
    """Runs an external command as a preprocessor.

    ``supports_renderer`` runs ``<cmd> supports <renderer>``; exit code 0 means
    supported. ``run`` sends ``[context, book]`` as JSON on stdin and reads the
    processed book as JSON from stdout. Stderr is passed through.
    """

    def __init__(self, name, cmd):
        self._name = name
        self._cmd = cmd

    def __repr__(self):
        return f"CmdPreprocessor(name={self._name!r}, cmd={self._cmd!r})"

    def __eq__(self, other):
        if not isinstance(other, CmdPreprocessor):
            return NotImplemented
        return (self._name, self._cmd) == (other._name, other._cmd)

    def __hash__(self):
        return hash((self._name, self._cmd))

    def name(self):
        """Return the preprocessor's name."""
        return self._name

    @property
    def cmd(self):
        """The command this preprocessor invokes."""
        return self._cmd

    def command(self):
        """Split the command string into an argument list."""
        words = shlex.split(self._cmd)
        if not words:
            raise ValueError("Command string was empty")
        return words

    @staticmethod
    def parse_input(reader):
        """Parse the ``(context, book)`` pair written to a preprocessor's stdin."""
        try:
            data = json.load(reader)
            if not isinstance(data, list) or len(data) != 2:
                raise ValueError(f"expected a pair of context and book, got {data!r}")
            ctx = PreprocessorContext.from_dict(data[0])
        except (ValueError, TypeError) as err:
            raise ValueError(f"Unable to parse the input: {err}") from err
        return ctx, data[1]

    @staticmethod
    def _serialize(book, ctx) -> str:
        return json.dumps([ctx.to_dict(), book])

    def write_input(self, writer, book, ctx):
        """Write ``[context, book]`` as JSON to a text or binary writer."""
        text = self._serialize(book, ctx)
        if isinstance(writer, (io.RawIOBase, io.BufferedIOBase)):
            writer.write(text.encode("utf-8"))
        else:
            writer.write(text)

    def run(self, ctx, book):
        """Send the book through the command and return the book it prints."""
        args = self.command()
        try:
            proc = subprocess.Popen(args, stdin=subprocess.PIPE, stdout=subprocess.PIPE)
        except OSError as err:
            raise RuntimeError(
                f'Unable to start the "{self._name}" preprocessor. Is it installed?'
            ) from err

        try:
            stdout, _ = proc.communicate(self._serialize(book, ctx).encode("utf-8"))
        except OSError as err:
            raise RuntimeError(
                f'Error waiting for the "{self._name}" preprocessor to complete'
            ) from err

        logger.debug("%s exited with status %s", self._cmd, proc.returncode)
        if proc.returncode != 0:
            raise RuntimeError(
                f'The "{self._name}" preprocessor exited unsuccessfully with '
                f"exit status: {proc.returncode} status"
            )

        try:
            return json.loads(stdout)
        except ValueError as err:
            raise ValueError(
                f'Unable to parse the preprocessed book from "{self._name}" processor'
            ) from err

    def supports_renderer(self, renderer):
        """Ask the command whether it supports ``renderer``."""
        logger.debug('Checking if the "%s" preprocessor supports "%s"', self._name, renderer)
        try:
            args = self.command()
        except ValueError as err:
            logger.warning(
                'Unable to create the command for the "%s" preprocessor, %s', self._name, err
            )
            return False

        try:
            result = subprocess.run([*args, "supports", renderer], stdin=subprocess.DEVNULL)
        except FileNotFoundError:
            logger.warning(
                'The command wasn\'t found, is the "%s" preprocessor installed?', self._name
            )
            logger.warning("\tCommand: %s", self._cmd)
            return False
        except OSError:
            return False
        return result.returncode == 0