"""AI project summaries generated from GitHub metadata and README content"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Optional

from app.clients.logging_utils import sanitize_log_extra
from app.clients.openrouter import ChatMessage
from app.config.settings import settings
from app.errors import SummaryGenerationError
from app.schemas.github import GitHubRepo

logger = logging.getLogger(__name__)

NON_TECH_TOPICS = ("featured", "portfolio", "project", "personal")

SYSTEM_PROMPT = """Tu es un rédacteur technique expert et passionné qui crée des résumés de projets captivants et amusants pour le portfolio d'un développeur.

Ta mission est de générer un résumé bref et accrocheur (2-3 phrases) qui met en avant :
- Le but principal et les fonctionnalités du projet de manière engageante
- Les technologies clés avec un ton enthousiaste
- Les caractéristiques notables ou réalisations impressionnantes

Adopte un ton professionnel mais décontracté, avec une pointe d'humour et d'enthousiasme. Rends ce projet irrésistible et mémorable ! Utilise des émojis avec parcimonie pour ajouter du dynamisme."""


@dataclass(slots=True)
class ProjectSummaryInput:
    """Project facts fed into the summary prompt."""

    name: str
    topics: list[str] = field(default_factory=list)
    description: Optional[str] = None
    language: Optional[str] = None
    readme_content: Optional[str] = None
    stars: int = 0
    forks: int = 0
    issues: int = 0


def extract_technologies(repo: GitHubRepo) -> list[str]:
    technologies = list(repo.topics)
    if repo.language and repo.language.lower() not in technologies:
        technologies.append(repo.language)
    return [tech for tech in technologies if tech.lower() not in NON_TECH_TOPICS]


def prepare_project_data(repo: GitHubRepo, readme_content: Optional[str] = None) -> ProjectSummaryInput:
    return ProjectSummaryInput(
        name=repo.name,
        description=repo.description or None,
        language=repo.language or None,
        topics=extract_technologies(repo),
        readme_content=readme_content or None,
        stars=repo.stargazers_count,
        forks=repo.forks_count,
        issues=repo.open_issues_count,
    )


def build_user_prompt(project: ProjectSummaryInput, *, readme_max_chars: int = 2000) -> str:
    if project.readme_content:
        excerpt = project.readme_content[:readme_max_chars]
        if len(project.readme_content) > readme_max_chars:
            excerpt += "..."
        readme_block = f"**Contenu README:**\n{excerpt}"
    else:
        readme_block = "**Note:** Aucun fichier README disponible"

    return f"""Crée un résumé captivant et fun pour ce projet :

**Nom du Projet:** {project.name}
**Description:** {project.description or 'Aucune description fournie'}
**Langage Principal:** {project.language or 'Non spécifié'}
**Technologies/Sujets:** {', '.join(project.topics) or 'Aucun spécifié'}
**Stats GitHub:** {project.stars} étoiles, {project.forks} forks, {project.issues} issues ouvertes

{readme_block}

Génère un résumé de 2-3 phrases en français qui soit à la fois professionnel, accrocheur et amusant - parfait pour un portfolio qui se démarque !"""


def build_messages(project: ProjectSummaryInput, *, readme_max_chars: int = 2000) -> list[ChatMessage]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": build_user_prompt(project, readme_max_chars=readme_max_chars)},
    ]


class ProjectSummarizer:
    """Generates a short portfolio blurb for a project with one completion call."""

    def __init__(
        self,
        llm_client: Any,
        *,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        readme_max_chars: Optional[int] = None,
    ) -> None:
        self._llm_client = llm_client
        self.max_tokens = max_tokens or settings.SUMMARY_MAX_TOKENS
        self.temperature = temperature if temperature is not None else settings.SUMMARY_TEMPERATURE
        self.readme_max_chars = readme_max_chars or settings.SUMMARY_README_MAX_CHARS

    async def generate(self, project: ProjectSummaryInput) -> str:
        messages = build_messages(project, readme_max_chars=self.readme_max_chars)
        try:
            text = await self._llm_client.complete(
                messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except Exception as exc:
            logger.error(
                "Failed to generate project summary",
                extra=sanitize_log_extra(project=project.name, error=str(exc)),
            )
            raise SummaryGenerationError("Failed to generate AI summary") from exc

        summary = (text or "").strip()
        if not summary:
            raise SummaryGenerationError("Failed to generate AI summary")
        return summary
