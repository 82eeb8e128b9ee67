import subprocess
from ..cli_logger import logger

TIMEOUT_RETURN_CODE = -2


def run_shell_command(command, env=None, input_data=None, cwd=None, timeout=None):
    """
    Executes a command and captures its output.

    Args:
        command (list): The command to execute as a list of strings.
        env (dict, optional): A dictionary of environment variables.
        input_data (str, optional): Data to be passed to the command's stdin.
        cwd (str, optional): The working directory for the command.
        timeout (float, optional): Seconds to wait before giving up on the command.

    Returns:
        A tuple (stdout, stderr, return_code). A command that cannot be found
        returns -1, one that exceeds the timeout returns TIMEOUT_RETURN_CODE.
    """
    try:
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            env=env,
            input=input_data,
            check=False,
            cwd=cwd,
            timeout=timeout,
        )
        return result.stdout, result.stderr, result.returncode

    except FileNotFoundError as e:
        logger.debug(f"Command not found: {e.filename}")
        return "", str(e), -1
    except subprocess.TimeoutExpired:
        logger.warning(f"Command timed out after {timeout}s: {' '.join(command)}")
        return "", f"timed out after {timeout}s", TIMEOUT_RETURN_CODE
    except OSError as e:
        logger.error(f"Could not execute {command[0]}: {e}")
        return "", str(e), -1
