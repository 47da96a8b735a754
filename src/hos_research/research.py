from __future__ import annotations

from dataclasses import replace
from typing import Dict, Sequence

from hos_research.models import Experiment, Finding, ResearchPaper, ResearchProject


def research_overview(
    projects: Sequence[ResearchProject],
    papers: Sequence[ResearchPaper],
    experiments: Sequence[Experiment],
) -> Dict[str, int]:
    return {
        "active_projects": sum(1 for p in projects if p.status == "active"),
        "total_projects": len(projects),
        "papers": len(papers),
        "papers_completed": sum(1 for p in papers if p.status == "completed"),
        "experiments": len(experiments),
        "experiments_running": sum(1 for e in experiments if e.status == "running"),
        "findings": sum(len(p.findings) for p in projects),
    }


def add_finding(project: ResearchProject, finding: Finding) -> ResearchProject:
    return replace(project, findings=[*project.findings, finding])


def update_progress(project: ResearchProject, progress: int) -> ResearchProject:
    return replace(project, progress=max(0, min(100, int(progress))))
