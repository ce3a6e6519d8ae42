# services/cache_keys.py

def course_key(course_id: str) -> str:
    return f"course:{course_id}"

def courses_list_key(filters_hash: str) -> str:
    return f"courses_list:{filters_hash}"

# Per-student keys share the student prefix so one scan clears them all
def student_prefix(student_id: str) -> str:
    return f"student:{student_id}:"

def progress_report_key(student_id: str, course_id: str = None) -> str:
    return f"{student_prefix(student_id)}progress_report:{course_id or 'all'}"

def quiz_scores_key(student_id: str, course_id: str = None) -> str:
    return f"{student_prefix(student_id)}quiz_scores:{course_id or 'all'}"

def analytics_key(student_id: str) -> str:
    return f"{student_prefix(student_id)}analytics"

# Auth
def blacklisted_jti_key(jti: str) -> str:
    return f"blacklisted_tokens:{jti}"
