from .endpoint_resolver import EndpointBinding, EndpointResolver
from .job_queue import JobQueue
from .protocol import Job, JobStatus, PollingProtocol
from .sanitizer import sanitize
from .service import GenerationService, get_generation_service
from .shapes import extract_job_id, extract_result_url

__all__ = [
    "EndpointBinding",
    "EndpointResolver",
    "GenerationService",
    "Job",
    "JobQueue",
    "JobStatus",
    "PollingProtocol",
    "extract_job_id",
    "extract_result_url",
    "get_generation_service",
    "sanitize",
]
