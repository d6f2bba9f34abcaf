"""dsc -- command line client for the Docspell document management system.

dsc logs in to a Docspell server, searches and downloads items, and uploads
files, either once or continuously from watched directories.

Typical workflow::

    dsc login --user demo             # store a session for the server
    dsc upload --traverse ~/inbox     # one item per file
    dsc watch --recursive ~/scans     # upload files as they appear

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration resolution.
    auth: Credential resolution, session storage, and request authentication.
    client: HTTP client and Docspell endpoint wrappers.
    upload: Upload planning.
    watch: Directory watching with debounce and retry.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting and logging setup.
"""

__version__ = "0.1.0"
