import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Any, Dict, Optional

import resend
from jinja2 import Environment, FileSystemLoader, select_autoescape
from tenacity import retry, stop_after_attempt, wait_exponential

from app.core.config import ResendConfig, ReviewWorkflowConfig, SMTPConfig


class EmailService:
    """
    邮件网关（SMTP 优先，Resend 兜底）。

    中文注释:
    - 所有 send_* 方法返回 bool，绝不向调用方抛异常：邮件失败不能回滚审稿流程。
    - 未配置任何通道时直接返回 False（本地/测试环境的默认行为）。
    """

    _SENTINEL = object()

    def __init__(
        self,
        *,
        smtp_config: SMTPConfig | None | object = _SENTINEL,
        resend_config: ResendConfig | None | object = _SENTINEL,
        workflow_config: ReviewWorkflowConfig | None = None,
    ):
        # 中文注释:
        # - smtp_config / resend_config 支持依赖注入，方便单测与不同环境切换。
        # - 若调用方显式传 None，则视为禁用该 provider。
        if smtp_config is self._SENTINEL:
            smtp_config = SMTPConfig.from_env()
        if resend_config is self._SENTINEL:
            resend_config = ResendConfig.from_env()

        self.smtp_config: SMTPConfig | None = smtp_config  # type: ignore[assignment]
        self.resend_config: ResendConfig | None = resend_config  # type: ignore[assignment]
        self.workflow_config = workflow_config or ReviewWorkflowConfig.from_env()

        if self.resend_config:
            resend.api_key = self.resend_config.api_key

        # backend/app/core/templates
        templates_dir = Path(__file__).resolve().parent / "templates"
        self._jinja = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(["html", "xml"]),
        )

    def is_configured(self) -> bool:
        return bool(self.smtp_config or self.resend_config)

    def render_template(self, template_name: str, context: Dict[str, Any]) -> str:
        base = {
            "journal_name": self.workflow_config.journal_name,
            "frontend_base_url": self.workflow_config.frontend_base_url,
        }
        return self._jinja.get_template(template_name).render(**{**base, **context})

    def send_email(
        self,
        *,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str | None = None,
    ) -> bool:
        """
        发送邮件（同步）。

        中文注释:
        - 单测默认走 SMTP 路径（会 patch smtplib.SMTP）。
        - 若 SMTP 未配置但 Resend 已配置，则自动降级走 Resend。
        """
        if not to_email:
            return False

        if self.smtp_config:
            try:
                msg = MIMEMultipart("alternative")
                msg["Subject"] = subject
                msg["From"] = self.smtp_config.from_email
                msg["To"] = to_email

                if text_body:
                    msg.attach(MIMEText(text_body, "plain", "utf-8"))
                msg.attach(MIMEText(html_body, "html", "utf-8"))

                with smtplib.SMTP(self.smtp_config.host, self.smtp_config.port) as server:
                    if self.smtp_config.use_starttls:
                        server.starttls()
                    if self.smtp_config.user and self.smtp_config.password:
                        server.login(self.smtp_config.user, self.smtp_config.password)
                    server.sendmail(self.smtp_config.from_email, [to_email], msg.as_string())
                return True
            except Exception as e:
                print(f"[SMTP] send failed: {e}")
                return False

        if self.resend_config:
            try:
                self._send_with_retry(to_email, subject, html_body)
                return True
            except Exception as e:
                print(f"[Resend] send failed: {e}")
                return False

        return False

    @retry(stop=stop_after_attempt(3), wait=wait_exponential(multiplier=1, min=2, max=10), reraise=True)
    def _send_with_retry(self, to_email: str, subject: str, html_content: str):
        params = {
            "from": self.resend_config.sender if self.resend_config else "EditorialFlow <no-reply@editorialflow.local>",
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }
        return resend.Emails.send(params)

    def send_template_email(
        self,
        *,
        to_email: str,
        subject: str,
        template_name: str,
        context: Dict[str, Any],
    ) -> bool:
        if not self.is_configured():
            return False
        try:
            html = self.render_template(template_name, context)
        except Exception as e:
            print(f"[Email] template render failed: {e}")
            return False
        return self.send_email(to_email=to_email, subject=subject, html_body=html)

    # === 审稿流程专用邮件 ===

    def _link(self, path: str) -> str:
        return f"{self.workflow_config.frontend_base_url}{path}"

    def send_review_invitation(
        self,
        *,
        to_email: str,
        reviewer_name: str,
        article_title: str,
        review_id: str,
        due_date: Optional[str],
        instructions: Optional[str] = None,
    ) -> bool:
        return self.send_template_email(
            to_email=to_email,
            subject=f"[{self.workflow_config.journal_name}] Invitation to review: {article_title}",
            template_name="review_invitation.html",
            context={
                "reviewer_name": reviewer_name,
                "article_title": article_title,
                "due_date": due_date,
                "instructions": instructions,
                "review_url": self._link(f"/reviewer/reviews/{review_id}"),
            },
        )

    def send_review_reminder(
        self,
        *,
        to_email: str,
        reviewer_name: str,
        article_title: str,
        review_id: str,
        due_date: Optional[str],
    ) -> bool:
        return self.send_template_email(
            to_email=to_email,
            subject=f"[{self.workflow_config.journal_name}] Review reminder: {article_title}",
            template_name="review_reminder.html",
            context={
                "reviewer_name": reviewer_name,
                "article_title": article_title,
                "due_date": due_date,
                "review_url": self._link(f"/reviewer/reviews/{review_id}"),
            },
        )

    def send_review_completed(
        self,
        *,
        to_email: str,
        editor_name: str,
        reviewer_name: str,
        article_title: str,
        article_id: str,
        recommendation: str,
    ) -> bool:
        return self.send_template_email(
            to_email=to_email,
            subject=f"[{self.workflow_config.journal_name}] Review completed: {article_title}",
            template_name="review_completed.html",
            context={
                "editor_name": editor_name,
                "reviewer_name": reviewer_name,
                "article_title": article_title,
                "recommendation": recommendation.replace("_", " "),
                "article_url": self._link(f"/editorial/articles/{article_id}"),
            },
        )

    def send_decision_notification(
        self,
        *,
        to_email: str,
        author_name: str,
        article_title: str,
        article_id: str,
        decision: str,
        feedback: Optional[str],
    ) -> bool:
        return self.send_template_email(
            to_email=to_email,
            subject=f"[{self.workflow_config.journal_name}] Editorial decision: {article_title}",
            template_name="decision_notification.html",
            context={
                "author_name": author_name,
                "article_title": article_title,
                "decision": decision.replace("_", " "),
                "feedback": feedback,
                "article_url": self._link(f"/author/articles/{article_id}"),
            },
        )
