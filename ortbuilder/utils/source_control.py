import os
from ..cli_logger import logger
from ..errors import SourceControlError
from .command_executor import run_shell_command


def _git(args, cwd=None):
    stdout, stderr, returncode = run_shell_command(["git", *args], cwd=cwd)
    return stdout.strip(), stderr.strip(), returncode

def _run_git(args, cwd=None):
    stdout, stderr, returncode = _git(args, cwd=cwd)
    if returncode != 0:
        logger.error(f"git {' '.join(args)} failed (Exit Code: {returncode})")
        if stderr:
            logger.error(f"Stderr:\n{stderr}")
        raise SourceControlError(f"git {args[0]} failed in {cwd or os.getcwd()}: {stderr or returncode}")
    return stdout


def clone_or_open(repo_url, workdir):
    """Clone ``repo_url`` into ``workdir`` unless a working copy is already there."""
    if os.path.isdir(os.path.join(workdir, ".git")):
        logger.info(f"  - Reusing existing working copy at {workdir}")
        return workdir

    if os.path.isdir(workdir) and os.listdir(workdir):
        raise SourceControlError(f"{workdir} exists but is not a git working copy")

    logger.info(f"  - Cloning {repo_url} into {workdir}...")
    os.makedirs(os.path.dirname(os.path.abspath(workdir)), exist_ok=True)
    _run_git(["clone", repo_url, workdir])
    return workdir


def resolve_reference(workdir, rev):
    """
    Resolve ``rev`` to a commit.

    Returns a tuple (commit, full reference name) where the reference name is
    None when ``rev`` names a bare commit rather than a tag or branch, or None
    when ``rev`` cannot be resolved at all.
    """
    commit, _, returncode = _git(["rev-parse", "--verify", "--quiet", f"{rev}^{{commit}}"], cwd=workdir)
    if returncode != 0 or not commit:
        return None
    ref_name, _, returncode = _git(["rev-parse", "--symbolic-full-name", rev], cwd=workdir)
    if returncode != 0 or not ref_name.startswith("refs/"):
        ref_name = None
    return commit, ref_name


def checkout_version(workdir, rev):
    """Check out ``rev`` and point HEAD at it; returns the resolved commit."""
    resolved = resolve_reference(workdir, rev)
    if resolved is None:
        logger.info(f"  - {rev} not known locally, fetching tags...")
        _run_git(["fetch", "--tags", "--force", "origin"], cwd=workdir)
        resolved = resolve_reference(workdir, rev)
    if resolved is None:
        raise SourceControlError(f"Could not resolve version reference {rev} in {workdir}")

    commit, ref_name = resolved
    _run_git(["checkout", "--force", "--detach", commit], cwd=workdir)
    if ref_name and ref_name.startswith("refs/heads/"):
        _run_git(["symbolic-ref", "HEAD", ref_name], cwd=workdir)
        logger.info(f"  - HEAD set to {ref_name} ({commit[:12]})")
    elif ref_name:
        # HEAD may only be symbolic for branches; tags stay detached at their commit
        logger.info(f"  - HEAD detached at {ref_name} ({commit[:12]})")
    else:
        logger.info(f"  - HEAD detached at {commit[:12]}")
    return commit


def prepare_git_repository(repo_url, workdir, rev):
    """Ensure ``workdir`` holds ``repo_url`` checked out at ``rev``."""
    clone_or_open(repo_url, workdir)
    checkout_version(workdir, rev)
    return workdir
