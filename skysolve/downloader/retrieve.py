"""
Module for downloading remote inputs with curl or wget
"""
import logging
from pathlib import Path

from skysolve.errors import RetrievalError
from skysolve.paths import CURL_NAME, WGET_NAME, is_remote_reference
from skysolve.utils import CommandResult, run_command, shell_join

logger = logging.getLogger(__name__)


def needs_retrieval(reference: str) -> bool:
    """
    An input is downloaded only when it is not a local file, and looks like
    an http(s) or ftp URL

    :param reference: raw input reference
    :return: boolean
    """
    return (not Path(reference).exists()) and is_remote_reference(reference)


def get_download_command(
    url: str, output_path: str | Path, transport: str = CURL_NAME, verbose: bool = False
) -> str:
    """
    Builds the command line to fetch a URL

    :param url: URL to fetch
    :param output_path: where to write the file
    :param transport: 'curl' or 'wget'
    :param verbose: if False, ask the tool to be quiet
    :return: command line
    """
    if transport == CURL_NAME:
        args = [CURL_NAME]
        if not verbose:
            args.append("--silent")
        args.append("--output")
    elif transport == WGET_NAME:
        args = [WGET_NAME]
        if not verbose:
            args.append("--quiet")
        args.append("-O")
    else:
        raise ValueError(f"Unknown download tool '{transport}'")

    return shell_join(args + [output_path, url])


def download_reference(
    url: str,
    output_path: str | Path,
    transport: str = CURL_NAME,
    verbose: bool = False,
    runner=run_command,
) -> Path:
    """
    Function to download a remote input to a local path

    :param url: URL to fetch
    :param output_path: where to write the file
    :param transport: 'curl' or 'wget'
    :param verbose: whether the download tool should be chatty
    :param runner: function used to run the command
    :return: local path
    """
    cmd = get_download_command(url, output_path, transport=transport, verbose=verbose)

    logger.info(f"Downloading {url} to {output_path}")

    result: CommandResult = runner(cmd)

    if not result.succeeded:
        raise RetrievalError(
            f"{transport} command {result.describe_failure()}",
            interrupted=result.interrupted,
        )

    return Path(output_path)
