"""Static keyword tables for task detection and priority assignment.

Matching is plain case-insensitive substring containment, so every entry
here is stored lowercase and may match inside longer words.
"""

# ── Priority subsets ───────────────────────────────────────────────────────────

#: Any of these makes a task high priority.
URGENT_KEYWORDS: tuple[str, ...] = (
    "至急",
    "緊急",
    "急ぎ",
    "早急",
    "大至急",
    "urgent",
    "asap",
    "immediately",
)

#: Deadline phrases; medium priority unless an urgent keyword is present.
MEDIUM_KEYWORDS: tuple[str, ...] = (
    "期限",
    "締切",
    "締め切り",
    "〆切",
    "期日",
    "までに",
    "本日中",
    "今週中",
    "deadline",
    "due",
    "by eod",
    "by end of",
)

# ── Task phrases ───────────────────────────────────────────────────────────────

REQUEST_KEYWORDS: tuple[str, ...] = (
    "お願いします",
    "お願いいたします",
    "お願い致します",
    "してください",
    "して下さい",
    "いただけますか",
    "頂けますか",
    "いただけないでしょうか",
    "ご依頼",
    "依頼",
    "please",
    "could you",
    "can you",
    "would you",
    "request",
)

QUESTION_KEYWORDS: tuple[str, ...] = (
    "でしょうか",
    "ですか",
    "ますか",
    "?",
    "？",
)

APPROVAL_KEYWORDS: tuple[str, ...] = (
    "承認",
    "確認",
    "ご確認",
    "決裁",
    "approve",
    "approval",
    "sign off",
    "review",
)

GENERIC_TASK_KEYWORDS: tuple[str, ...] = (
    "対応",
    "提出",
    "返信",
    "回答",
    "作業",
    "タスク",
    "todo",
    "to do",
    "to-do",
    "task",
    "action required",
    "action item",
    "reply",
    "respond",
)


def _union(*tables: tuple[str, ...]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for table in tables:
        for keyword in table:
            seen.setdefault(keyword.lower(), None)
    return tuple(seen)


#: Every keyword that turns an email into a task. Includes both priority
#: subsets, so a high or medium priority always implies a task.
TASK_KEYWORDS: tuple[str, ...] = _union(
    REQUEST_KEYWORDS,
    MEDIUM_KEYWORDS,
    QUESTION_KEYWORDS,
    URGENT_KEYWORDS,
    APPROVAL_KEYWORDS,
    GENERIC_TASK_KEYWORDS,
)
