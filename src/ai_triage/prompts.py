"""Шаблоны запросов к модели.

Подстановка выполняется только по известным именованным плейсхолдерам, чтобы
фигурные скобки в заголовках и описаниях не ломали форматирование.
"""

import re

NEXT_LINE = "\n"
NO_DESCRIPTION = "No description provided"

SUMMARY_PROMPT = """You are an expert at analyzing GitHub issues and pull requests.

Given the following content, generate a structured summary in strict JSON format:

{
  "problem_statement": "Brief description of the problem or change",
  "scope": "Scope of the change (e.g., backend, frontend, database)",
  "key_entities": ["list", "of", "relevant", "entities"],
  "affected_files": ["list", "of", "affected", "file", "paths"]
}

Content:
Title: {title}
Body: {body}
{files}

Respond ONLY with valid JSON. No markdown, no explanation."""

DUPLICATE_DETECTION_PROMPT = """You are an expert at identifying duplicate issues and pull requests.

Compare the current item with the candidate item and determine if they are duplicates.

Current Item:
Title: {current_title}
Summary: {current_summary}

Candidate Item #{candidate_number}:
Title: {candidate_title}
Summary: {candidate_summary}

Respond in strict JSON format:
{
  "classification": "duplicate | related | distinct",
  "confidence": 0.0-1.0,
  "canonical_item": "number or null",
  "reasoning": "brief explanation"
}

Classification guidelines:
- "duplicate": Essentially the same issue/PR
- "related": Similar topic but different scope
- "distinct": Completely different

Respond ONLY with valid JSON. No markdown, no explanation."""

PR_REVIEW_PROMPT = """You are an expert code reviewer analyzing a pull request.

PR Details:
Title: {title}
Description: {description}
Changed Files: {file_count}
Additions: {additions}
Deletions: {deletions}

Diff Summary:
{diff_summary}

Analyze this PR and respond in strict JSON format:
{
  "summary": "What the PR does in 1-2 sentences",
  "risk_level": "low | medium | high",
  "missing_elements": ["tests", "docs", "benchmarks"],
  "design_alignment": "aligned | partially_aligned | misaligned",
  "readiness_score": 0-100
}

Risk Level Guidelines:
- low: Minor changes, well-tested, no breaking changes
- medium: Moderate changes, some testing, potential side effects
- high: Major changes, missing tests, breaking changes, or core system modifications

Missing Elements should include any of: tests, docs, benchmarks, migration scripts, security review

Readiness Score (0-100):
- 80-100: Ready for review
- 60-79: Needs minor improvements
- 40-59: Needs moderate work
- 0-39: Needs major work

Respond ONLY with valid JSON. No markdown, no explanation."""


def _fill(template: str, values: dict[str, str]) -> str:
    # Один проход: подставленные значения повторно не сканируются.
    pattern = re.compile(r"\{(" + "|".join(re.escape(key) for key in values) + r")\}")
    return pattern.sub(lambda match: values[match.group(1)], template)


def format_summary_prompt(title: str, body: str, files: list[str] | None = None) -> str:
    """Сформировать запрос на структурированное описание.

    :param title: Заголовок issue или PR
    :param body: Описание
    :param files: Затронутые файлы, блок добавляется только если список не пуст
    :return: Текст запроса
    """
    files_section = ""
    if files:
        files_section = f"{NEXT_LINE}Affected Files:{NEXT_LINE}{NEXT_LINE.join(files)}"

    return _fill(SUMMARY_PROMPT, {"title": title, "body": body or NO_DESCRIPTION, "files": files_section})


def format_duplicate_prompt(
    current_title: str,
    current_summary: str,
    candidate_number: int,
    candidate_title: str,
    candidate_summary: str,
) -> str:
    """Сформировать запрос на классификацию пары элементов."""
    return _fill(
        DUPLICATE_DETECTION_PROMPT,
        {
            "current_title": current_title,
            "current_summary": current_summary,
            "candidate_number": str(candidate_number),
            "candidate_title": candidate_title,
            "candidate_summary": candidate_summary,
        },
    )


def format_review_prompt(
    title: str,
    description: str,
    file_count: int,
    additions: int,
    deletions: int,
    diff_summary: str,
) -> str:
    """Сформировать запрос на ревью Pull Request."""
    return _fill(
        PR_REVIEW_PROMPT,
        {
            "title": title,
            "description": description or NO_DESCRIPTION,
            "file_count": str(file_count),
            "additions": str(additions),
            "deletions": str(deletions),
            "diff_summary": diff_summary,
        },
    )
