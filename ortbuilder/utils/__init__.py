from .command_executor import run_shell_command
from .file_manager import download, extract_archive
from .source_control import prepare_git_repository
