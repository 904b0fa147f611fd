"""Model backend factory.

Resolves model IDs to a backend by prefix.
"""

from workbench.llm.backends import AnthropicBackend, GeminiBackend, ModelBackend

BACKEND_PREFIXES = (
    ("claude-", AnthropicBackend),
    ("gemini-", GeminiBackend),
)


def get_backend(model_id: str) -> ModelBackend:
    """Build the backend serving ``model_id``.

    Raises:
        ValueError: If no backend claims the model ID's prefix
    """
    for prefix, backend_cls in BACKEND_PREFIXES:
        if model_id.startswith(prefix):
            return backend_cls(model_id=model_id)
    known = ", ".join(f"'{prefix}'" for prefix, _ in BACKEND_PREFIXES)
    raise ValueError(f"Unknown model: '{model_id}'. Expected a model ID starting with {known}.")
