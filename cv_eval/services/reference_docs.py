# =============================================================================
# Reference Documents — Job Requirements and Scoring Rubric
# =============================================================================
#
# The two fixed documents loaded into the DocumentStore at startup. Their
# section headers ("Required Technical Skills", "Technical Skills Match", ...)
# are looked up by the context builders in retrieval.py, so renaming a
# header here requires updating the header tables there.
# =============================================================================

from __future__ import annotations

import logging

from cv_eval.services.document_store import (
    JOB_REQUIREMENTS_ID,
    SCORING_RUBRIC_ID,
    DocumentStore,
)

logger = logging.getLogger(__name__)

JOB_REQUIREMENTS = """
    Product Engineer (Backend) 2025 - Rakamin Position Requirements

    We're seeking a backend engineer to build AI-powered systems and scalable solutions.

    Core Responsibilities:
    - Building robust backend solutions with high performance and throughput
    - Designing and fine-tuning AI prompts aligned with product requirements
    - Building LLM chaining flows where model outputs are reliably passed between models
    - Implementing Retrieval-Augmented Generation (RAG) with vector databases
    - Handling long-running AI processes with job orchestration and retry mechanisms
    - Managing failure cases from 3rd party APIs and LLM nondeterminism
    - Writing reusable, testable, and efficient code
    - Strengthening test coverage for robust web applications

    Required Technical Skills:
    - Backend frameworks: Node.js, Django, Rails, Express.js
    - Databases: PostgreSQL, MySQL, MongoDB, Redis
    - APIs: RESTful services, GraphQL, microservices architecture
    - Cloud platforms: AWS, Google Cloud, Azure
    - Programming languages: JavaScript, Python, Java, Ruby
    - AI/ML: LLM APIs, embeddings, vector databases, prompt engineering
    - DevOps: Docker, Kubernetes, CI/CD pipelines
    - Testing: Automated testing, unit tests, integration tests
    - Security: Authentication, authorization, data protection

    Experience Requirements:
    - 2+ years backend development experience
    - Experience with microservices and distributed systems
    - Exposure to AI/LLM development or strong desire to learn
    - Track record of building scalable applications
    - Experience with performance optimization and monitoring

    Desired Qualities:
    - Strong problem-solving and analytical skills
    - Excellent communication and collaboration abilities
    - Self-motivated with ability to work independently
    - Continuous learning mindset
    - Experience mentoring junior developers
    - Contribution to open source projects
"""

SCORING_RUBRIC = """
    Comprehensive Scoring Rubric for CV and Project Evaluation

    === CV EVALUATION SCORING (1-5 scale) ===

    1. Technical Skills Match (Weight: 40%)
    SCORE 5 (Excellent):
    - Strong backend expertise (Node.js, Python, databases)
    - Demonstrated AI/LLM integration experience
    - Cloud platform proficiency (AWS/GCP/Azure)
    - Modern development practices (Docker, microservices, testing)

    SCORE 4 (Strong):
    - Solid backend foundation with 2+ relevant technologies
    - Some AI/LLM exposure or strong interest indicated
    - Basic cloud platform experience
    - Good understanding of software engineering practices

    SCORE 3 (Partial):
    - Basic backend skills with 1-2 relevant technologies
    - Limited or no AI experience but willingness to learn
    - Minimal cloud exposure
    - Standard development practices

    SCORE 2 (Minimal):
    - Few overlapping technical skills
    - No AI/LLM background
    - Limited modern development experience

    SCORE 1 (Poor):
    - Irrelevant or outdated technical skills
    - No alignment with job requirements

    2. Experience Level (Weight: 25%)
    SCORE 5: 5+ years with high-impact, complex projects
    SCORE 4: 3-4 years with solid track record and meaningful projects
    SCORE 3: 2-3 years with mid-scale projects and growth trajectory
    SCORE 2: 1-2 years with basic projects and limited scope
    SCORE 1: <1 year or only trivial projects

    3. Relevant Achievements (Weight: 20%)
    SCORE 5: Multiple quantifiable achievements with major business impact
    SCORE 4: Clear performance improvements and measurable outcomes
    SCORE 3: Some documented achievements with moderate impact
    SCORE 2: Minimal quantifiable improvements shown
    SCORE 1: No clear measurable achievements demonstrated

    4. Cultural/Collaboration Fit (Weight: 15%)
    SCORE 5: Strong leadership, mentoring, excellent communication skills
    SCORE 4: Good teamwork, clear communication, collaboration experience
    SCORE 3: Average communication with some team interaction indicated
    SCORE 2: Basic collaboration skills with minimal demonstration
    SCORE 1: Poor communication or no teamwork evidence

    === PROJECT EVALUATION SCORING (1-5 scale) ===

    1. Correctness - Prompt & Chaining (Weight: 30%)
    SCORE 5: Excellent prompt design with sophisticated chaining logic
    SCORE 4: Correct LLM integration with good prompt engineering
    SCORE 3: Basic working implementation with adequate prompts
    SCORE 2: Minimal LLM integration with poor prompt design
    SCORE 1: No proper LLM integration or missing prompt functionality

    2. Code Quality & Structure (Weight: 25%)
    SCORE 5: Exceptional code organization, comprehensive testing, best practices
    SCORE 4: Good structure with solid testing and clean architecture
    SCORE 3: Decent organization with basic testing coverage
    SCORE 2: Some structure but limited testing and documentation
    SCORE 1: Poor code organization, no tests, difficult to understand

    3. Resilience & Error Handling (Weight: 20%)
    SCORE 5: Production-ready resilience with comprehensive error handling
    SCORE 4: Solid error handling with retry mechanisms and timeouts
    SCORE 3: Basic error handling for common failure scenarios
    SCORE 2: Minimal error handling with limited failure recovery
    SCORE 1: No error handling or resilience considerations

    4. Documentation & Explanation (Weight: 15%)
    SCORE 5: Outstanding documentation with design insights and trade-offs
    SCORE 4: Clear, comprehensive documentation with good explanations
    SCORE 3: Adequate documentation covering setup and basic usage
    SCORE 2: Minimal documentation with basic setup instructions
    SCORE 1: Poor or missing documentation

    5. Creativity & Bonus Features (Weight: 10%)
    SCORE 5: Outstanding innovative features beyond requirements
    SCORE 4: Strong additional functionality with thoughtful enhancements
    SCORE 3: Some useful extra features or improvements
    SCORE 2: Basic additional features with limited value
    SCORE 1: No additional features beyond minimum requirements
"""


def load_reference_documents(store: DocumentStore) -> DocumentStore:
    """Populate `store` with the job description and rubric, then mark it ready."""
    store.load(JOB_REQUIREMENTS_ID, JOB_REQUIREMENTS, "job-description")
    store.load(SCORING_RUBRIC_ID, SCORING_RUBRIC, "evaluation-criteria")
    store.initialized = True

    status = store.status()
    logger.info(
        "Document store initialized: %d documents, %d chunks",
        status.document_count, status.total_chunks,
    )
    return store
