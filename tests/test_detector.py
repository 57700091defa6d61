"""
Tests for qimport.detection.detector

Test Coverage:
- detect_composition(): rule order, explicit types, mixed files, DetectionError
- infer_row_type(): explicit label, populated columns, fallback
"""
import pytest

from qimport.datasources.csv_file import parse_csv_text
from qimport.detection.detector import MIXED, detect_composition, infer_row_type
from qimport.errors import DetectionError, RowValidationError
from qimport.models.enums import QuestionType
from qimport.models.question_input import RawRow


def detect(csv_text: str):
    table = parse_csv_text(csv_text)
    return detect_composition(table.header, table.rows[:5])


class TestDetectComposition:
    def test_mcq_by_options_and_correct_answer(self):
        comp = detect(
            "subject,grade,questionText,optionA,optionB,optionC,optionD,correctAnswer,difficultyLevel\n"
            "Science,Grade 1,Q,a,b,c,d,B,150\n"
        )
        assert comp.question_type is QuestionType.MCQ

    @pytest.mark.parametrize("label", ["MCQ", "mcq", "Mcq"])
    def test_explicit_type_is_case_insensitive(self, label):
        comp = detect(
            "subject,grade,questionText,questionType,optionA,optionB,correctAnswer,difficultyLevel\n"
            f"Science,Grade 1,Q,{label},a,b,A,150\n"
        )
        assert comp.question_type is QuestionType.MCQ

    def test_two_explicit_types_is_mixed(self):
        comp = detect(
            "subject,grade,questionText,questionType,difficultyLevel,dokLevel\n"
            "Science,Grade 1,Q1,MCQ,150,\n"
            "Science,Grade 1,Q2,Essay,200,3\n"
        )
        assert comp == MIXED
        assert comp.is_mixed
        assert str(comp) == "mixed"

    def test_blank_columns_win_over_correct_answer(self):
        comp = detect(
            "subject,grade,questionText,blankOptions,blankCorrects,correctAnswer,difficultyLevel\n"
            "Science,Grade 1,A ___ b,\"x,y\",A,A,150\n"
        )
        assert comp.question_type is QuestionType.FILL_IN_BLANK

    def test_matching_columns(self):
        comp = detect(
            "subject,grade,questionText,leftItems,rightItems,correctPairs,difficultyLevel\n"
            "Science,Grade 1,Match,\"a,b\",\"c,d\",\"0-1,1-0\",150\n"
        )
        assert comp.question_type is QuestionType.MATCHING

    def test_correct_answers_is_multiple_select(self):
        comp = detect(
            "subject,grade,questionText,optionA,optionB,optionC,optionD,correctAnswers,difficultyLevel\n"
            "Science,Grade 1,Q,a,b,c,d,\"[A,C]\",150\n"
        )
        assert comp.question_type is QuestionType.MULTIPLE_SELECT

    def test_true_false_when_all_answers_boolean(self):
        comp = detect(
            "subject,grade,questionText,correctAnswer,difficultyLevel\n"
            "Science,Grade 1,Q1,true,150\n"
            "Science,Grade 1,Q2,FALSE,150\n"
        )
        assert comp.question_type is QuestionType.TRUE_FALSE

    def test_letter_answers_are_not_true_false(self):
        comp = detect(
            "subject,grade,questionText,optionA,optionB,correctAnswer,difficultyLevel\n"
            "Science,Grade 1,Q1,a,b,true,150\n"
            "Science,Grade 1,Q2,a,b,B,150\n"
        )
        assert comp.question_type is QuestionType.MCQ

    def test_free_response_without_question_type_is_rejected(self):
        with pytest.raises(DetectionError) as exc:
            detect("subject,grade,questionText,difficultyLevel,description\nScience,Grade 1,Q,150,d\n")
        assert "questionType" in str(exc.value)

    def test_options_without_answer_column_is_rejected(self):
        with pytest.raises(DetectionError):
            detect("subject,grade,questionText,optionA,optionB,difficultyLevel\nScience,Grade 1,Q,a,b,150\n")


class TestInferRowType:
    def test_explicit_label(self):
        row = RawRow({"questiontype": "Short Answer"})
        assert infer_row_type(row) is QuestionType.SHORT_ANSWER

    def test_unknown_label_is_row_error(self):
        with pytest.raises(RowValidationError):
            infer_row_type(RawRow({"questiontype": "Crossword"}))

    def test_populated_columns(self):
        row = RawRow({"questiontype": "", "leftitems": "a,b", "rightitems": "c,d"})
        assert infer_row_type(row, fallback=QuestionType.MCQ) is QuestionType.MATCHING

    def test_fallback_to_file_type(self):
        row = RawRow({"subject": "Science", "description": "x"})
        assert infer_row_type(row, fallback=QuestionType.ESSAY) is QuestionType.ESSAY

    def test_no_type_at_all(self):
        with pytest.raises(RowValidationError):
            infer_row_type(RawRow({"subject": "Science"}))
