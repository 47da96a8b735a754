from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field, replace
from typing import List, Sequence

import requests

from hos_research.ai_client import AIClient
from hos_research.errors import AIServiceError, AITimeoutError
from hos_research.models import ResearchPaper, ResearchProject

logger = logging.getLogger(__name__)


@dataclass
class PaperAnalysis:
    summary: str
    key_findings: List[str] = field(default_factory=list)
    relevance_score: float = 0.0


PAPER_ANALYSIS_FAILED_SUMMARY = "Error analyzing paper"


def failed_paper_analysis() -> PaperAnalysis:
    return PaperAnalysis(summary=PAPER_ANALYSIS_FAILED_SUMMARY)


def _numbered(lines: Sequence[str]) -> str:
    return "\n".join(f"{idx}. {line}" for idx, line in enumerate(lines, start=1))


def generate_research_insight(client: AIClient, project: ResearchProject) -> str:
    findings = [f.description or f.title for f in project.findings]
    system = (
        "You are an expert research analyst. Generate actionable insights based on research "
        "projects and findings. Be specific, cite evidence, and suggest next steps."
    )
    user = f"""Research Project: {project.title}

Description: {project.description}

Current Findings:
{_numbered(findings) if findings else "None recorded yet."}

Based on these findings, generate a key insight that could advance this research. Include:
1. The insight or discovery
2. Supporting evidence from the findings
3. Suggested next steps
4. Potential applications"""
    return client.ask(system, user, temperature=0.8)


def _strip_code_fence(text: str) -> str:
    content = (text or "").strip()
    match = re.match(r"^```(?:json)?\s*(.*?)\s*```$", content, flags=re.DOTALL)
    return match.group(1) if match else content


def parse_paper_analysis(raw: str) -> PaperAnalysis:
    try:
        parsed = json.loads(_strip_code_fence(raw))
    except json.JSONDecodeError:
        return failed_paper_analysis()
    if not isinstance(parsed, dict):
        return failed_paper_analysis()

    findings = parsed.get("keyFindings", [])
    if not isinstance(findings, list):
        findings = []
    try:
        score = float(parsed.get("relevanceScore", 0))
    except (TypeError, ValueError):
        score = 0.0
    return PaperAnalysis(
        summary=str(parsed.get("summary", "")).strip(),
        key_findings=[str(x).strip() for x in findings if str(x).strip()],
        relevance_score=min(100.0, max(0.0, score)),
    )


def analyze_research_paper(client: AIClient, paper: ResearchPaper) -> PaperAnalysis:
    system = "You are an AI research paper analyzer. Analyze papers and extract key information in JSON format."
    user = f"""Analyze this research paper and respond with JSON:

Title: {paper.title}
Abstract: {paper.abstract}

Provide:
{{
  "summary": "2-3 sentence summary",
  "keyFindings": ["finding1", "finding2", "finding3"],
  "relevanceScore": 0-100
}}"""
    try:
        raw = client.ask(system, user, temperature=0.3)
    except (AIServiceError, AITimeoutError, requests.RequestException) as exc:
        logger.warning("paper analysis failed for %s: %s", paper.id, exc)
        return failed_paper_analysis()
    return parse_paper_analysis(raw)


def apply_paper_analysis(paper: ResearchPaper, analysis: PaperAnalysis) -> ResearchPaper:
    if analysis.summary == PAPER_ANALYSIS_FAILED_SUMMARY:
        return paper
    return replace(
        paper,
        key_findings=list(analysis.key_findings),
        relevance_score=analysis.relevance_score,
        notes=analysis.summary or paper.notes,
    )


def suggest_experiment(client: AIClient, hypothesis: str, context: str) -> str:
    system = "You are an experimental design expert. Suggest rigorous experiments to test hypotheses."
    user = f"""Hypothesis: {hypothesis}

Context: {context}

Design an experiment to test this hypothesis. Include:
1. Experiment name
2. Methodology
3. Variables (independent, dependent, control)
4. Expected outcomes
5. Success criteria"""
    return client.ask(system, user, temperature=0.7)
