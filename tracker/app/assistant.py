"""
Plain-language explanations of verification verdicts.

The template explanation restates only the status and reasons it is given and
never adds facts. When a text-generation backend is configured it is asked
first, under the same constraint; any failure falls back to the template.
"""
import logging
from typing import Optional, Sequence

import requests

from .llm import LLMClient, LLMUnavailable
from .schemas import Explanation, VerificationStatus

log = logging.getLogger("tracker.assistant")

_SUMMARY = {
    VerificationStatus.VERIFIED:
        "Summary: The certificate passed all checks based on the provided data.",
    VerificationStatus.PARTIALLY_VERIFIED:
        "Summary: The certificate passed some checks but has issues that may require follow-up.",
    VerificationStatus.FAKE:
        "Summary: The certificate failed verification checks based on the provided data.",
}

_RECOMMENDATION = {
    VerificationStatus.VERIFIED:
        "Recommendation: Based on the provided verification data, the certificate can be trusted.",
    VerificationStatus.PARTIALLY_VERIFIED:
        "Recommendation: Treat the certificate with caution. Consider contacting the issuer "
        "for clarification or verifying the missing fields.",
    VerificationStatus.FAKE:
        "Recommendation: Do not trust this certificate without further independent verification.",
}


def template_explanation(status: Optional[VerificationStatus], reasons: Sequence[str]) -> str:
    if status is None:
        return "\n\n".join([
            "Result: Unknown.",
            "No verification result is available.",
            "Action: Please run verification first.",
        ])

    lines = [f"Result: {status.value}.", _SUMMARY[status]]
    if reasons:
        lines.append("Why:")
        lines.extend(f"{i}. {r}" for i, r in enumerate(reasons, start=1))
    else:
        lines.append("Why: No specific reasons were provided.")
    lines.append(_RECOMMENDATION[status])
    lines.append("Note: This explanation is based only on the provided verification status "
                 "and reasons and does not introduce any additional facts.")
    return "\n\n".join(lines)


def _prompt(status: VerificationStatus, reasons: Sequence[str]) -> str:
    joined = " | ".join(reasons) if reasons else "None"
    return (
        "Explain the following verification result in plain language for a "
        "non-technical user.\n\n"
        f"Status: {status.value}\nReasons: {joined}\n\n"
        "Rules: Only use the information provided (status and reasons). Do not invent "
        "or assume facts beyond these inputs. Keep the explanation short and clear."
    )


def explain_verdict(status: Optional[VerificationStatus], reasons: Sequence[str],
                    client: Optional[LLMClient] = None) -> Explanation:
    if status is not None and client is not None and client.configured:
        try:
            return Explanation(text=client.complete(_prompt(status, reasons)), source="llm")
        except (LLMUnavailable, requests.RequestException, ValueError) as exc:
            log.warning("LLM explanation failed, using template: %s", exc)
    return Explanation(text=template_explanation(status, reasons), source="template")
