# =============================================================================
# Services Package — Business Logic
# =============================================================================
# Contains the core business logic, separated from API handlers:
#   - document_store.py: in-memory chunked reference documents + search
#   - reference_docs.py: the job description and scoring rubric
#   - retrieval.py: lexical chunk ranking and prompt context builders
#   - llm.py: Multi-provider LLM abstraction (Anthropic, OpenAI-compatible)
#   - resilience.py: retry/backoff/fallback wrapper around every LLM call
#   - extractor.py: text extraction (plain text, PDF/DOCX via Docling)
#   - repository.py / jobs.py / uploads.py: in-memory records and the
#     evaluation job state machine
# =============================================================================
