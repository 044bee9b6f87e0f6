"""Встроенные шаблоны писем.

Шаблон — тема, текстовая и HTML-версия письма. Переменные подставляются
через str.format, поэтому фигурные скобки в HTML нужно удваивать.
В HTML-версию значения попадают экранированными (html.escape), в тему
и текст — как есть.

Переменные шаблона expiry_warning:
    recipientName, recipientEmail, expiryDate, daysRemaining,
    applicationTitle, applicationUrl
"""

import html
from dataclasses import dataclass
from typing import Any

from mediakeeper.core.exceptions import EmailTemplateNotFoundError

EXPIRY_WARNING_TEMPLATE = "expiry_warning"


@dataclass(frozen=True)
class MailTemplate:
    """Шаблон письма.

    Attributes:
        subject: Тема письма.
        text: Текстовая версия.
        html: HTML-версия.
    """

    subject: str
    text: str
    html: str


@dataclass(frozen=True)
class RenderedMail:
    """Письмо с подставленными переменными."""

    subject: str
    text: str
    html: str


_EXPIRY_WARNING = MailTemplate(
    subject="{applicationTitle}: доступ истекает через {daysRemaining} дн.",
    text=(
        "Здравствуйте, {recipientName}!\n"
        "\n"
        "Ваш доступ к {applicationTitle} истекает {expiryDate} "
        "(осталось дней: {daysRemaining}).\n"
        "После этой даты аккаунт будет отключён.\n"
        "Чтобы продлить доступ, свяжитесь с администратором.\n"
        "{applicationLink}"
    ),
    html=(
        "<html><body style=\"font-family: sans-serif;\">"
        "<p>Здравствуйте, {recipientName}!</p>"
        "<p>Ваш доступ к <b>{applicationTitle}</b> истекает "
        "<b>{expiryDate}</b> (осталось дней: {daysRemaining}).</p>"
        "<p>После этой даты аккаунт будет отключён. "
        "Чтобы продлить доступ, свяжитесь с администратором.</p>"
        "{applicationLinkHtml}"
        "</body></html>"
    ),
)

TEMPLATES: dict[str, MailTemplate] = {
    EXPIRY_WARNING_TEMPLATE: _EXPIRY_WARNING,
}


def render_template(name: str, variables: dict[str, Any]) -> RenderedMail:
    """Подставить переменные в шаблон.

    Отсутствующие имя получателя и ссылка на приложение заменяются
    безопасными значениями, чтобы письмо не содержало "None".

    Args:
        name: Имя шаблона.
        variables: Переменные шаблона.

    Returns:
        Готовые тема, текст и HTML.

    Raises:
        EmailTemplateNotFoundError: Шаблон не существует.
    """
    template = TEMPLATES.get(name)
    if template is None:
        raise EmailTemplateNotFoundError(name)

    values = dict(variables)
    values["recipientName"] = (
        values.get("recipientName") or values.get("recipientEmail") or ""
    )

    url = values.get("applicationUrl")
    values["applicationLink"] = f"\n{url}\n" if url else ""

    html_values = {
        key: html.escape("" if value is None else str(value))
        for key, value in values.items()
    }
    html_url = html_values.get("applicationUrl")
    html_values["applicationLinkHtml"] = (
        f'<p><a href="{html_url}">{html_url}</a></p>' if url else ""
    )

    return RenderedMail(
        subject=template.subject.format(**values),
        text=template.text.format(**values),
        html=template.html.format(**html_values),
    )
