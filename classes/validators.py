from classes.errors import ValidationError
from models.questions import QUESTION_TYPES
from utils.helpers import clean_text, parse_optional_int


def validate_length(field_name, value, max_length):
    if len(value) > max_length:
        raise ValidationError(f"{field_name} must be {max_length} characters or fewer.")


def validate_required_text(field_name, value, max_length=None):
    text = clean_text(value)
    if not text:
        raise ValidationError(f"{field_name} is required")
    if max_length:
        validate_length(field_name, text, max_length)
    return text


def validate_questions(questions):
    """Check a full question list and return it normalised for saving.

    Each question needs text, at least two non-empty answers and at least one
    correct answer; a 'single' question needs exactly one.
    """
    if not isinstance(questions, list):
        raise ValidationError("Questions must be a list.")

    cleaned = []
    for i, question in enumerate(questions, start=1):
        if not isinstance(question, dict):
            raise ValidationError(f"Question {i} must be an object.")

        text = clean_text(question.get("question_text"))
        if not text:
            raise ValidationError(f"Question {i} is empty")

        question_type = question.get("question_type", "single")
        if question_type not in QUESTION_TYPES:
            raise ValidationError(f"Question {i} has an invalid type '{question_type}'")

        answers = question.get("answers")
        if not isinstance(answers, list) or len(answers) < 2:
            raise ValidationError(f"Question {i} needs at least 2 answers")

        cleaned_answers = []
        for j, answer in enumerate(answers, start=1):
            if not isinstance(answer, dict):
                raise ValidationError(f"Question {i}, answer {j} must be an object.")
            answer_text = clean_text(answer.get("answer_text"))
            if not answer_text:
                raise ValidationError(f"Question {i}, answer {j} is empty")
            cleaned_answers.append({"answer_text": answer_text, "is_correct": bool(answer.get("is_correct"))})

        correct_count = sum(1 for a in cleaned_answers if a["is_correct"])
        if correct_count == 0:
            raise ValidationError(f"Question {i} needs at least one correct answer")
        if question_type == "single" and correct_count != 1:
            raise ValidationError(f"Question {i} is single choice and needs exactly one correct answer")

        try:
            time_limit = parse_optional_int(question.get("time_limit"), f"Question {i} time_limit", minimum=1)
        except ValueError as e:
            raise ValidationError(str(e))

        cleaned.append({
            "question_text": text,
            "question_type": question_type,
            "image_url": question.get("image_url") or None,
            "time_limit": time_limit,
            "answers": cleaned_answers,
        })
    return cleaned
