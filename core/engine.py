from dataclasses import dataclass
from urllib.parse import urlparse
import logging
import asyncio
from typing import Any, Awaitable, List, Optional, Set

from core.analyzer_registry import AnalyzerRegistry
from core.context import DetectionInput, ScanContext, TLSInfo
from core.corpus_store import CorpusStore, get_corpus_store
from core.evaluator import SignatureEvaluator
from core.relationship_resolver import RelationshipResolver
from fetch.http_client import PageContent, retrieve_page, retrieve_robots_txt
from fetch.dns_client import resolve_ip_address
from fetch.tls_client import get_tls_info

# Import all analyzers to trigger @AnalyzerRegistry.register decorators
import analyzers.url
import analyzers.headers
import analyzers.cookies
import analyzers.meta_tags
import analyzers.assets
import analyzers.script_content
import analyzers.html
import analyzers.js
import analyzers.robots
import analyzers.certificate

from models.detection import DetectedTechnology, WebsiteAnalysisResult

# Ceiling for each retrieval call (page, robots.txt, DNS, TLS), in seconds
RETRIEVAL_TIMEOUT = 20.0


@dataclass
class RetrievedArtifacts:
    """Everything the retrieval step collected for one URL."""
    page: PageContent
    robots_txt: Optional[str] = None
    ip_address: Optional[str] = None
    tls_info: Optional[TLSInfo] = None


def validate_url(url: str) -> Optional[str]:
    """Return an error message for a URL that cannot be analyzed, None if it is fine."""
    parsed = urlparse(url or "")
    if parsed.scheme not in ("http", "https"):
        return "Invalid URL: scheme must be http or https"
    if not parsed.hostname:
        return "Invalid URL: missing hostname"
    return None


class Engine:
    def __init__(self, corpus_store: Optional[CorpusStore] = None, exclude_analyzers: Set[str] = None,
                 retrieval_timeout: float = RETRIEVAL_TIMEOUT):
        """Initialize the engine with the registered analyzers.

        Args:
            corpus_store: Store providing corpus snapshots (default: the global store)
            exclude_analyzers: Set of analyzer names to exclude (e.g., {'html', 'js'})
            retrieval_timeout: Ceiling in seconds for each retrieval call
        """
        self.logger = logging.getLogger(__name__)
        self.corpus_store = corpus_store or get_corpus_store()
        self.retrieval_timeout = retrieval_timeout

        # Instantiate all registered analyzers dynamically
        self.analyzers = AnalyzerRegistry.instantiate_all(exclude=exclude_analyzers)
        self.logger.info(f"Initialized {len(self.analyzers)} analyzers")

        if exclude_analyzers:
            self.logger.info(f"Excluded analyzers: {', '.join(sorted(exclude_analyzers))}")

    def detect(self, detection_input: DetectionInput) -> List[DetectedTechnology]:
        """
        Detect technologies from already retrieved artifacts.

        Pure and synchronous: one corpus snapshot is taken at the start and
        used for the whole call.

        Returns:
            Resolved technologies, highest confidence first
        """
        corpus = self.corpus_store.snapshot()
        artifacts = (
            detection_input.url,
            detection_input.html_content,
            detection_input.headers,
            detection_input.cookies,
            detection_input.robots_txt_content,
            detection_input.tls_info,
        )
        if not any(artifacts):
            self.logger.debug(f"Nothing to analyze for {detection_input.url}")
            return []

        context = ScanContext.from_input(detection_input)
        self.logger.debug(
            f"Context for {context.url}: {len(context.scripts)} scripts, {len(context.links)} links, "
            f"{len(context.inline_scripts)} inline scripts, {len(context.meta)} meta keys, "
            f"{len(context.cookies)} cookies"
        )

        detected = SignatureEvaluator(corpus, self.analyzers).evaluate(context)
        resolved = RelationshipResolver(corpus).resolve(detected)
        self.logger.info(
            f"Detected {len(resolved)} technologies for {context.url} "
            f"({len(detected)} matched directly, corpus v{corpus.version})"
        )
        return sorted(resolved.values(), key=lambda tech: (-tech.confidence, tech.name))

    async def _bounded(self, label: str, awaitable: Awaitable, default: Any) -> Any:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.retrieval_timeout)
        except asyncio.TimeoutError:
            self.logger.warning(f"{label} timed out after {self.retrieval_timeout}s")
            return default

    async def retrieve(self, url: str) -> RetrievedArtifacts:
        """Fetch page, robots.txt, IP address and TLS certificate concurrently."""
        self.logger.debug(f"Starting retrieval for {url}")
        loop = asyncio.get_running_loop()
        hostname = urlparse(url).hostname

        async def nothing():
            return None

        # Blocking DNS/TLS lookups run in the default executor
        dns_call = loop.run_in_executor(None, resolve_ip_address, hostname) if hostname else nothing()
        tls_call = (
            loop.run_in_executor(None, get_tls_info, hostname)
            if hostname and url.lower().startswith("https://")
            else nothing()
        )

        page, robots_txt, ip_address, tls_info = await asyncio.gather(
            self._bounded("Page fetch", retrieve_page(url),
                          PageContent(html=None, error="Request timed out while fetching content.")),
            self._bounded("robots.txt fetch", retrieve_robots_txt(url), None),
            self._bounded("DNS lookup", dns_call, None),
            self._bounded("TLS probe", tls_call, {"error": "TLS probe timed out"}),
        )
        if tls_info and tls_info.get("error"):
            self.logger.debug(f"TLS info unavailable for {hostname}: {tls_info['error']}")
        return RetrievedArtifacts(page=page, robots_txt=robots_txt, ip_address=ip_address, tls_info=tls_info)

    async def analyze_website(self, url: str) -> WebsiteAnalysisResult:
        """Retrieve a website and detect its technologies."""
        invalid = validate_url(url)
        if invalid:
            return WebsiteAnalysisResult(
                detected_technologies=[],
                analysis_summary=f"Cannot analyze {url}. {invalid}",
                error=invalid,
            )

        self.logger.info(f"Starting analysis for {url}")
        artifacts = await self.retrieve(url)
        page = artifacts.page

        if page.error or not page.html:
            message = page.error or "No HTML content found."
            self.logger.warning(f"Failed to retrieve content from {url}: {message}")
            return WebsiteAnalysisResult(
                detected_technologies=[],
                analysis_summary=f"Failed to retrieve content from {url}. {message}",
                error=message,
                final_url=page.final_url,
                status=page.status,
                ip_address=artifacts.ip_address,
                tls_info=artifacts.tls_info,
            )

        target = page.final_url or url
        try:
            technologies = self.detect(
                DetectionInput(
                    url=target,
                    html_content=page.html,
                    headers=page.headers,
                    cookies=page.cookies,
                    robots_txt_content=artifacts.robots_txt,
                    tls_info=artifacts.tls_info,
                )
            )
        except Exception as e:
            self.logger.error(f"Error during detection for {url}: {e}", exc_info=True)
            return WebsiteAnalysisResult(
                detected_technologies=[],
                analysis_summary=f"An error occurred during analysis of {url}: {e}",
                error=str(e),
                final_url=page.final_url,
                status=page.status,
                ip_address=artifacts.ip_address,
                tls_info=artifacts.tls_info,
            )

        summary = f"Signature-based analysis of {target} complete. "
        if technologies:
            summary += f"Detected {len(technologies)} potential technologies."
        else:
            summary += "No specific technologies detected."

        return WebsiteAnalysisResult(
            detected_technologies=technologies,
            analysis_summary=summary,
            final_url=page.final_url,
            status=page.status,
            ip_address=artifacts.ip_address,
            tls_info=artifacts.tls_info,
        )
