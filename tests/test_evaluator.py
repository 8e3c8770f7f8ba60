import core.engine  # noqa: F401 (registers the analyzers)
from core.analyzer_registry import AnalyzerRegistry
from core.evaluator import SignatureEvaluator, _fold
from models.detection import Detection, Evidence, WebsiteAnalysisResult


def _evaluator(corpus, exclude=None):
    return SignatureEvaluator(corpus, AnalyzerRegistry.instantiate_all(exclude=exclude))


def test_fold_prefers_versioned_candidate_on_equal_confidence():
    plain = Detection(name="Lib", confidence=0.8, evidence=Evidence(type="html"))
    versioned = Detection(name="Lib", confidence=0.8, evidence=Evidence(type="script_src"), version="2.1")

    assert _fold(_fold(None, plain), versioned).version == "2.1"
    assert _fold(_fold(None, versioned), plain).version == "2.1"


def test_fold_highest_confidence_wins_then_first():
    first = Detection(name="Lib", confidence=0.5, evidence=Evidence(type="html", value="first"))
    second = Detection(name="Lib", confidence=0.5, evidence=Evidence(type="html", value="second"))
    strong = Detection(name="Lib", confidence=0.9, evidence=Evidence(type="headers"))

    assert _fold(_fold(None, first), second) is first
    assert _fold(_fold(None, first), strong) is strong


def test_dedup_tie_break_keeps_detection_with_version(make_corpus, make_context):
    corpus = make_corpus([{
        "name": "Lib",
        "cats": [4],
        "html": ["lib-loader\\;confidence:80"],
        "script_src": ["lib-(\\d\\.\\d)\\.js\\;version:\\1\\;confidence:80"],
    }])
    html = '<div class="lib-loader"></div><script src="/lib-2.1.js"></script>'

    detected = _evaluator(corpus).evaluate(make_context(html=html))

    assert detected["Lib"].confidence == 0.8
    assert detected["Lib"].version == "2.1"


def test_output_fields(make_corpus, make_context):
    corpus = make_corpus([{
        "name": "Nginx",
        "cats": [10, 12],
        "website": "https://nginx.org",
        "icon": "Nginx.svg",
        "headers": {"server": "nginx(?:/([\\d.]+))?\\;version:\\1"},
    }])

    tech = _evaluator(corpus).evaluate(make_context(headers={"Server": "nginx/1.25.3"}))["Nginx"]

    assert tech.id == "nginx"
    assert tech.version == "1.25.3"
    assert tech.confidence == 1.0
    assert tech.category == "Web Servers, Reverse Proxies"
    assert tech.category_ids == frozenset({10, 12})
    assert tech.matched_value == "nginx/1.25.3"
    assert tech.detection_method.startswith("headers[server] matched /nginx")
    assert tech.website == "https://nginx.org"
    assert tech.to_dict()["detectionMethod"] == tech.detection_method


def test_matched_value_truncated_on_serialization(make_corpus, make_context):
    corpus = make_corpus([{"name": "Nginx", "cats": [10], "headers": {"server": "nginx.*"}}])
    tech = _evaluator(corpus).evaluate(make_context(headers={"Server": "nginx/1.25.3 (Ubuntu)"}))["Nginx"]

    assert tech.to_dict(value_max_length=5)["matchedValue"] == "nginx"
    assert tech.to_dict()["matchedValue"] == "nginx/1.25.3 (Ubuntu)"

    result = WebsiteAnalysisResult(detected_technologies=[tech], analysis_summary="done")
    assert result.to_dict(value_max_length=5)["detectedTechnologies"][0]["matchedValue"] == "nginx"


def test_static_version_used_when_no_pattern_extracts_one(make_corpus, make_context):
    corpus = make_corpus([{"name": "Widget", "cats": [7], "version": "2", "html": ["widget-root"]}])
    detected = _evaluator(corpus).evaluate(make_context(html='<div id="widget-root"></div>'))
    assert detected["Widget"].version == "2"


def test_absent_artifacts_yield_no_matches(make_corpus, make_context):
    corpus = make_corpus([{
        "name": "Everything",
        "cats": [7],
        "headers": {"x-powered-by": ""},
        "cookies": {"sid": ""},
        "robots": ["Disallow"],
        "cert_issuer": ["."],
        "js": {"app": ""},
    }])
    assert _evaluator(corpus).evaluate(make_context(html="<p>plain</p>")) == {}


def test_excluded_analyzer_is_not_run(make_corpus, make_context):
    corpus = make_corpus([{"name": "PHP", "cats": [13], "headers": {"x-powered-by": "php"}}])
    context = make_context(headers={"X-Powered-By": "PHP/8.2"})

    assert "PHP" in _evaluator(corpus).evaluate(context)
    assert _evaluator(corpus, exclude={"headers"}).evaluate(context) == {}


def test_failing_analyzer_does_not_abort_evaluation(make_corpus, make_context):
    class Broken:
        def analyze(self, signature, context):
            raise RuntimeError("boom")

    corpus = make_corpus([
        {"name": "Nginx", "cats": [10], "headers": {"server": "nginx"}},
        {"name": "Widget", "cats": [7], "html": ["widget-root"]},
    ])
    analyzers = AnalyzerRegistry.instantiate_all()
    analyzers["headers"] = Broken()
    context = make_context(html='<div id="widget-root"></div>', headers={"server": "nginx"})

    detected = SignatureEvaluator(corpus, analyzers).evaluate(context)

    assert set(detected) == {"Widget"}


def test_confidence_always_within_bounds(make_corpus, make_context):
    corpus = make_corpus([
        {"name": "Over", "cats": [7], "confidence": 3, "html": ["a"]},
        {"name": "Under", "cats": [7], "confidence": -1, "html": ["a"]},
    ])
    detected = _evaluator(corpus).evaluate(make_context(html="<b>a</b>"))
    assert all(0.0 <= tech.confidence <= 1.0 for tech in detected.values())
