from enum import Enum


class ErrorCode(Enum):
    PROMPT_NOT_FOUND = "prompt_not_found"
    PROMPT_ALREADY_EXISTS = "prompt_already_exists"
    MISSING_VARIABLES = "missing_variables"
    VARIABLE_NOT_FOUND = "variable_not_found"
    INVALID_NAME = "invalid_name"
    INVALID_ASSIGNMENT = "invalid_assignment"
    INVALID_PLATFORM = "invalid_platform"
    TOO_MANY_TAGS = "too_many_tags"
    SCHEMA_VERSION = "schema_version"
    STORAGE = "storage"


class PromptlibError(Exception):
    def __init__(self, code: ErrorCode, message: str):
        self.code = code
        self.message = message
        super().__init__(message)

    @classmethod
    def prompt_not_found(cls, name: str) -> "PromptlibError":
        return cls(ErrorCode.PROMPT_NOT_FOUND, f"Prompt not found: {name}")

    @classmethod
    def prompt_already_exists(cls, name: str) -> "PromptlibError":
        return cls(ErrorCode.PROMPT_ALREADY_EXISTS, f"Prompt already exists: {name}")

    @classmethod
    def missing_variables(cls, variables: list[str]) -> "PromptlibError":
        return cls(
            ErrorCode.MISSING_VARIABLES,
            f"Missing variables: {', '.join(variables)}",
        )

    @classmethod
    def variable_not_found(cls, name: str) -> "PromptlibError":
        return cls(
            ErrorCode.VARIABLE_NOT_FOUND,
            f"Variable not found in prompt: {name!r}",
        )

    @classmethod
    def invalid_name(cls, name: str) -> "PromptlibError":
        return cls(
            ErrorCode.INVALID_NAME,
            f"Invalid name: {name!r}. Must match ^[a-z0-9][a-z0-9_-]*$",
        )

    @classmethod
    def invalid_assignment(cls, text: str) -> "PromptlibError":
        return cls(
            ErrorCode.INVALID_ASSIGNMENT,
            f"Invalid variable assignment: {text!r}. Expected name=value",
        )

    @classmethod
    def invalid_platform(cls, platform: str, choices: tuple[str, ...]) -> "PromptlibError":
        return cls(
            ErrorCode.INVALID_PLATFORM,
            f"Unknown platform: {platform!r}. Expected one of: {', '.join(choices)}",
        )

    @classmethod
    def too_many_tags(cls, count: int, limit: int) -> "PromptlibError":
        return cls(
            ErrorCode.TOO_MANY_TAGS,
            f"Too many tags: {count} given, at most {limit} allowed",
        )

    @classmethod
    def schema_version(cls, expected: int, got: int) -> "PromptlibError":
        return cls(
            ErrorCode.SCHEMA_VERSION,
            f"Schema version mismatch: expected {expected}, got {got}",
        )

    @classmethod
    def storage(cls, detail: str) -> "PromptlibError":
        return cls(ErrorCode.STORAGE, f"Storage error: {detail}")
