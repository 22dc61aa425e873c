"""Работа с GitHub API: issue, Pull Request, комментарии и метки."""

import logging
from typing import Any

from github import Github
from github.GithubException import GithubException, UnknownObjectException

from .models import Item, PRFile

logger = logging.getLogger(__name__)

DEFAULT_LABEL_COLOR = "0052CC"
LABEL_COLORS = {
    "possible-duplicate": "FBCA04",
    "needs-tests": "D93F0B",
    "high-risk": "B60205",
    "ready-for-review": "0E8A16",
}


def get_default_label_color(label_name: str) -> str:
    return LABEL_COLORS.get(label_name, DEFAULT_LABEL_COLOR)


def item_from_payload(data: dict[str, Any]) -> Item:
    """Собрать Item из объекта issue или pull_request события GitHub.

    :param data: Объект из payload события
    :return: Item
    """
    return Item(
        number=data["number"],
        title=data.get("title") or "",
        body=data.get("body"),
        state=data.get("state") or "open",
        created_at=data.get("created_at") or "",
        html_url=data.get("html_url") or "",
        head_sha=(data.get("head") or {}).get("sha"),
        additions=data.get("additions"),
        deletions=data.get("deletions"),
        changed_files=data.get("changed_files"),
    )


def _item_from_github(obj: Any) -> Item:
    return Item(
        number=obj.number,
        title=obj.title or "",
        body=obj.body,
        state=obj.state or "open",
        created_at=obj.created_at.isoformat() if obj.created_at else "",
        html_url=obj.html_url or "",
    )


class GitHubClient:
    """Клиент трекера для одного репозитория."""

    def __init__(self, github_token: str, repository: str):
        """Инициализация клиента.

        :param github_token: Токен для доступа к GitHub API
        :param repository: Полное имя репозитория (owner/repo)
        """
        self.github = Github(github_token)
        self.repository = repository
        self.repo = self.github.get_repo(repository)

    def get_pull_request_files(self, pr_number: int) -> list[PRFile]:
        """Получить список файлов, измененных в PR.

        :param pr_number: Номер Pull Request
        :return: Список файлов, пустой при ошибке
        """
        try:
            pr = self.repo.get_pull(pr_number)
            return [
                PRFile(
                    filename=f.filename,
                    status=f.status,
                    additions=f.additions,
                    deletions=f.deletions,
                    changes=f.changes,
                    patch=f.patch,
                )
                for f in pr.get_files()
            ]
        except Exception as e:
            logger.warning(f"Ошибка при получении файлов PR #{pr_number}: {e}")
            return []

    def get_recent_issues(self, limit: int) -> list[Item]:
        """Получить последние issue репозитория, новые первыми.

        Берутся первые limit элементов, затем из них исключаются Pull Request,
        поэтому результат может быть короче limit.

        :param limit: Количество элементов
        :return: Список issue, пустой при ошибке
        """
        try:
            issues = self.repo.get_issues(state="all", sort="created", direction="desc")[:limit]
            return [_item_from_github(issue) for issue in issues if issue.pull_request is None]
        except Exception as e:
            logger.warning(f"Ошибка при получении последних issue: {e}")
            return []

    def get_recent_pull_requests(self, limit: int) -> list[Item]:
        """Получить последние Pull Request репозитория, новые первыми.

        :param limit: Количество элементов
        :return: Список PR, пустой при ошибке
        """
        try:
            pulls = self.repo.get_pulls(state="all", sort="created", direction="desc")[:limit]
            return [_item_from_github(pr) for pr in pulls]
        except Exception as e:
            logger.warning(f"Ошибка при получении последних PR: {e}")
            return []

    def is_ci_passing(self, head_sha: str | None) -> bool:
        """Проверить, что комбинированный статус коммита успешен.

        :param head_sha: SHA последнего коммита PR
        :return: True только при статусе success
        """
        if not head_sha:
            return False
        try:
            return self.repo.get_commit(head_sha).get_combined_status().state == "success"
        except Exception as e:
            logger.warning(f"Ошибка при получении статуса CI для {head_sha}: {e}")
            return False

    def create_comment(self, number: int, body: str) -> None:
        """Оставить комментарий к issue или PR.

        :param number: Номер issue или PR
        :param body: Текст комментария в markdown
        """
        try:
            self.repo.get_issue(number).create_comment(body)
            logger.info(f"Комментарий опубликован в #{number}")
        except Exception as e:
            logger.error(f"Ошибка при создании комментария в #{number}: {e}")
            raise

    def ensure_label(self, name: str) -> None:
        """Создать метку в репозитории, если ее еще нет.

        Ошибки проверки и создания метки только логируются, чтобы остальные
        метки все равно были добавлены к элементу.

        :param name: Название метки
        """
        try:
            self.repo.get_label(name)
            return
        except UnknownObjectException:
            pass
        except GithubException as e:
            logger.warning(f"Ошибка при проверке метки {name}: {e}. Пробуем создать")

        try:
            self.repo.create_label(name=name, color=get_default_label_color(name))
            logger.info(f"Создана метка: {name}")
        except Exception as e:
            logger.warning(f"Ошибка при создании метки {name}: {e}")

    def add_labels(self, number: int, labels: list[str]) -> list[str]:
        """Добавить метки к issue или PR.

        Метки, которые уже стоят на элементе, пропускаются, поэтому повторный
        вызов ничего не дублирует.

        :param number: Номер issue или PR
        :param labels: Названия меток
        :return: Фактически добавленные метки
        """
        requested = list(dict.fromkeys(label for label in labels if label))
        if not requested:
            return []

        try:
            issue = self.repo.get_issue(number)
            existing = {label.name for label in issue.get_labels()}
            to_add = [label for label in requested if label not in existing]
            if not to_add:
                logger.info(f"Метки уже установлены в #{number}: {', '.join(requested)}")
                return []

            for label in to_add:
                self.ensure_label(label)

            issue.add_to_labels(*to_add)
            logger.info(f"Метки добавлены в #{number}: {', '.join(to_add)}")
            return to_add
        except Exception as e:
            logger.warning(f"Ошибка при добавлении меток в #{number}: {e}")
            return []
