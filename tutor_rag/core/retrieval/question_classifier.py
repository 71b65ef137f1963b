"""
Keyword-based question classifier.

Routes a learner question to an exam subject (or study-material category)
and tells exam-style questions apart from concept questions.

Dependencies: tutor_rag.models.rag
System role: Lightweight query routing ahead of retrieval
"""

from tutor_rag.models.rag import QuestionCategory

SUBJECT_NAMES = {
    "software_design": "소프트웨어 설계",
    "software_development": "소프트웨어 개발",
    "database_construction": "데이터베이스 구축",
    "programming_language": "프로그래밍 언어 활용",
    "information_system": "정보시스템 구축관리",
    "exam_questions": "기출문제",
    "exam_trends": "출제동향",
    "exam_info": "시험정보",
    "study_tips": "학습꿀팁",
    "mock_tests": "모의고사",
    "summary_notes": "요약정리",
}

# Declaration order breaks ties: the first subject with the top count wins
SUBJECT_KEYWORDS = {
    "software_design": ["요구사항", "uml", "설계", "모델링", "아키텍처", "디자인패턴", "분석"],
    "software_development": ["개발", "프로그래밍", "java", "python", "c언어", "알고리즘", "자료구조"],
    "database_construction": ["데이터베이스", "db", "sql", "정규화", "트랜잭션", "er다이어그램", "관계형"],
    "programming_language": ["언어", "java", "c", "python", "javascript", "문법", "라이브러리"],
    "information_system": ["정보시스템", "네트워크", "보안", "프로젝트관리", "시스템구축", "it관리"],
    "exam_questions": ["기출문제", "기출", "문제", "회차", "년도", "시험문제"],
    "exam_trends": ["출제동향", "동향", "경향", "트렌드", "출제", "변화"],
    "exam_info": ["시험정보", "접수", "일정", "시험제도", "응시자격", "합격기준"],
    "study_tips": ["꿀팁", "학습법", "공부법", "암기", "노하우", "효율"],
    "mock_tests": ["모의고사", "모의시험", "실전", "연습", "테스트"],
    "summary_notes": ["요약", "정리", "핵심", "요점", "총정리", "마무리"],
}

EXAM_KEYWORDS = ["기출", "문제", "시험", "회차", "년도"]


def subject_name(subject_id: str | None) -> str | None:
    """Display name stored on chunks for a subject id; unknown ids pass through."""
    if subject_id is None:
        return None
    return SUBJECT_NAMES.get(subject_id, subject_id)


def analyze_question_category(question: str) -> QuestionCategory:
    """
    Classify a question by keyword counts.

    Args:
        question: Learner question

    Returns:
        QuestionCategory: Best subject id (None without any match), exam or
        concept category, and the question's multi-character words
    """
    lowered = question.lower()

    best_id: str | None = None
    best_count = 0
    for subject_id, keywords in SUBJECT_KEYWORDS.items():
        count = sum(1 for keyword in keywords if keyword in lowered)
        if count > best_count:
            best_id, best_count = subject_id, count

    is_exam = any(keyword in lowered for keyword in EXAM_KEYWORDS)

    return QuestionCategory(
        subject_id=best_id,
        category="exam" if is_exam else "concept",
        keywords=[word for word in lowered.split(" ") if len(word) > 1],
        details={"match_count": best_count},
    )
