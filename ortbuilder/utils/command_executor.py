import subprocess
from ..cli_logger import logger


class _FailedProcess:
    returncode = -1


def run_shell_command(command, stream_output=False, env=None, cwd=None):
    """
    Executes a command, optionally streaming its combined output.

    Args:
        command (list): The command to execute as a list of strings.
        stream_output (bool): If True, streams the output in real-time.
        env (dict, optional): A dictionary of environment variables.
        cwd (str, optional): The working directory for the command.

    Returns:
        If stream_output is True, returns a tuple (line generator, process);
        the process return code is set once the generator is exhausted.
        If stream_output is False, returns a tuple (stdout, stderr, return_code).
        A command that cannot be found reports a return code of -1.
    """
    try:
        if stream_output:
            process = subprocess.Popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                bufsize=1,
                universal_newlines=True,
                env=env,
                cwd=cwd
            )

            def _generator():
                for line in process.stdout:
                    yield line
                process.communicate()
            return _generator(), process

        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            env=env,
            check=False,
            cwd=cwd
        )
        return result.stdout, result.stderr, result.returncode

    except FileNotFoundError as e:
        logger.error(f"Command not found: {e.filename}")
        if stream_output:
            return iter([]), _FailedProcess()
        return "", str(e), -1
