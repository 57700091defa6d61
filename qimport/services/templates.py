# qimport/services/templates.py
"""
Образцы CSV для каждого типа вопросов (команда `qimport template`).
"""
import csv
import io
from typing import Dict, List, Sequence, Tuple

from qimport.models.enums import QuestionType

Template = Tuple[Sequence[str], List[Sequence[str]]]

_MCQ_HEADER = ("subject", "grade", "questionText", "questionType", "optionA", "optionB",
               "optionC", "optionD", "correctAnswer", "difficultyLevel", "competencyCodes")
_MS_HEADER = ("subject", "grade", "questionText", "questionType", "optionA", "optionB",
              "optionC", "optionD", "correctAnswers", "difficultyLevel", "competencyCodes")
_FREE_HEADER = ("subject", "grade", "questionText", "questionType", "difficultyLevel",
                "dokLevel", "description", "competencyCodes")

TEMPLATES: Dict[QuestionType, Template] = {
    QuestionType.MCQ: (_MCQ_HEADER, [
        ("Computer Science", "Grade 1", "What does CPU stand for?", "MCQ", "Central Processing Unit",
         "Computer Personal Unit", "Central Process Unit", "Central Processor Unit", "A", "150",
         "LOG001,TEC001"),
        ("Computer Science", "Grade 1", "Which of the following is a volatile memory?", "MCQ",
         "ROM", "HDD", "RAM", "SSD", "C", "220", "TEC001,PRO001"),
        ("Science", "Grade 1", "Mitochondria is ______ of the cell.", "MCQ",
         "Brain", "Powerhouse", "Nucleus", "Factory", "B", "167", "LOG001,PRO001"),
    ]),
    QuestionType.MULTIPLE_SELECT: (_MS_HEADER, [
        ("Computer Science", "Grade 1", "Which of the following are storage devices? (Select all that apply)",
         "MultipleSelect", "Hard Disk Drive", "Solid State Drive", "Random Access Memory",
         "Read Only Memory", "A,B", "180", "LOG001,TEC001"),
        ("Mathematics", "Grade 1", "Which of the following are prime numbers? (Select all that apply)",
         "MultipleSelect", "2", "3", "4", "5", "A,B,D", "190", "LOG001,PRO001"),
    ]),
    QuestionType.TRUE_FALSE: (
        ("subject", "grade", "questionText", "questionType", "correctAnswer", "difficultyLevel",
         "competencyCodes"),
        [
            ("Science", "Grade 1", "Water boils at 100 degrees Celsius at sea level.", "TrueFalse",
             "true", "150", "LOG001"),
            ("Mathematics", "Grade 1", "7 is an even number.", "TrueFalse", "false", "120", "LOG001"),
        ],
    ),
    QuestionType.FILL_IN_BLANK: (
        ("subject", "grade", "questionText", "questionType", "blankOptions", "blankCorrects",
         "difficultyLevel", "competencyCodes"),
        [
            ("Science", "Grade 1", "The capital of France is ___ and the capital of Germany is ___.",
             "FillInBlank", "Paris,London,Berlin,Madrid;Berlin,Paris,London,Madrid", "A;A", "200",
             "LOG001,PRO001"),
            ("Science", "Grade 1", "Water freezes at ___ degrees Celsius and boils at ___ degrees Celsius.",
             "FillInBlank", "0,10,20,30;100,90,80,70", "A;A", "190", "LOG001,PRO001"),
        ],
    ),
    QuestionType.MATCHING: (
        ("subject", "grade", "questionText", "questionType", "leftItems", "rightItems",
         "correctPairs", "difficultyLevel", "competencyCodes"),
        [
            ("Science", "Grade 1", "Match each animal with its habitat.", "Matching",
             "Fish,Camel,Penguin", "Desert,Antarctica,Ocean", "0-2,1-0,2-1", "210", "LOG001"),
        ],
    ),
    QuestionType.SHORT_ANSWER: (_FREE_HEADER, [
        ("Science", "Grade 1", "Explain the process of photosynthesis in your own words.", "ShortAnswer",
         "200", "3", "Provide a brief explanation (100 words or less)", "LOG001,PRO001"),
        ("Computer Science", "Grade 1", "What is the difference between RAM and ROM?", "ShortAnswer",
         "220", "2", "Explain in 2-3 sentences", "LOG001,TEC001"),
    ]),
    QuestionType.ESSAY: (_FREE_HEADER, [
        ("Science", "Grade 1", "Discuss the impact of climate change on ecosystems.", "Essay",
         "280", "4", "Provide a comprehensive analysis with examples and evidence", "LOG001,PRO001"),
        ("History", "Grade 1", "Analyze the causes and effects of World War II.", "Essay",
         "300", "4", "Include multiple perspectives and historical evidence", "LOG001,PRO001"),
    ]),
}


def template_filename(qtype: QuestionType) -> str:
    slug = {
        QuestionType.MCQ: "mcq",
        QuestionType.MULTIPLE_SELECT: "multiple_select",
        QuestionType.TRUE_FALSE: "true_false",
        QuestionType.FILL_IN_BLANK: "fill_in_blank",
        QuestionType.MATCHING: "matching",
        QuestionType.SHORT_ANSWER: "short_answer",
        QuestionType.ESSAY: "essay",
    }[qtype]
    return f"question_import_template_{slug}.csv"


def render_template(qtype: QuestionType) -> str:
    """
    CSV-текст шаблона. Поля с запятыми/точками с запятой берутся в кавычки.
    """
    header, rows = TEMPLATES[qtype]
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buf.getvalue()
