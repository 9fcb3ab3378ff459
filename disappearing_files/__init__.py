from .config import Settings, load_settings
from .creation import (
    AlreadyExistsError,
    NameCollisionExhaustedError,
    create_new,
    create_new_directory,
    create_new_file,
)
from .deleter import DeleteError, RobustDeleter, delete_recursively
from .directory import (
    DisappearingDirectory,
    NameOptions,
    PathError,
    UseAfterDisposeError,
)
from .names import (
    generate_random_name_with_extension,
    generate_random_path,
    generate_random_string,
    normalize_extension,
)

ScopedTempDirectory = DisappearingDirectory

__all__ = [
    "AlreadyExistsError",
    "DeleteError",
    "DisappearingDirectory",
    "NameCollisionExhaustedError",
    "NameOptions",
    "PathError",
    "RobustDeleter",
    "ScopedTempDirectory",
    "Settings",
    "UseAfterDisposeError",
    "create_new",
    "create_new_directory",
    "create_new_file",
    "delete_recursively",
    "generate_random_name_with_extension",
    "generate_random_path",
    "generate_random_string",
    "load_settings",
    "normalize_extension",
]
