"""Custom exception hierarchy for the materials retrieval core."""


class MaterialsRAGError(Exception):
    """Base exception for all retrieval core errors."""


class ConfigurationError(MaterialsRAGError):
    """Error in system configuration."""


class EmbeddingError(MaterialsRAGError):
    """Error generating embeddings."""


class ProviderTransientError(EmbeddingError):
    """Network or timeout class failure; retried before surfacing."""


class ProviderPermanentError(EmbeddingError):
    """Request the provider will never accept; surfaced without retry."""


class ProviderAuthError(ProviderPermanentError):
    """Credentials or permissions rejected by the provider."""


class VectorStoreError(MaterialsRAGError):
    """Error reading from or writing to the vector store."""


class IndexingError(MaterialsRAGError):
    """Error while building a partition."""


class RetrievalError(MaterialsRAGError):
    """Error during retrieval."""


class PartitionUnavailableError(RetrievalError):
    """A single partition query failed or timed out."""


class AllPartitionsFailedError(RetrievalError):
    """Every selected partition failed for one search."""


class GenerationError(MaterialsRAGError):
    """Error during answer generation."""


class EvaluationError(MaterialsRAGError):
    """Error loading or running evaluation cases."""


class ToolArgumentError(MaterialsRAGError):
    """Tool-call arguments missing or not convertible to the declared type."""
