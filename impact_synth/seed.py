#!/usr/bin/env python3
"""
Seed the database with the demo catalog.

Usage:
    python -m impact_synth.seed

This script:
1. Creates all database tables
2. Clears existing catalog and participation rows
3. Creates the LeaderCare fund, its programs, and the shared surveys
"""

import logging

from .database import (
    init_db, make_engine, make_session_factory,
    FundDB, ProgramDB, MilestoneDB, SurveyDB, QuestionDB,
    UserDB, SessionDB, ApplicationDB, SurveyResponseDB, QuestionResponseDB,
    MilestoneReflectionDB, RatingDB, ReviewDB
)

logger = logging.getLogger(__name__)


def _scale(low: str, high: str):
    return [f"0 - {low}", "1", "2", "3", "4", "5", "6", "7", "8", "9", f"10 - {high}"]


YEARS_OPTIONS = ["Less than 5 years", "5-10 years", "11-20 years", "More than 20 years"]

CONTRIBUTION_OPTIONS = [
    "None - This experience did not focus on this area",
    "None - In spite of the experience focusing on this area",
    "A little",
    "A lot",
]

FUND = {
    "name": "LeaderCare",
    "description": (
        "A collaboration of over 40 organizations that makes it easier for Christian "
        "leaders to take actionable steps toward flourishing in ministry across the "
        "spiritual, relational, mental/physical, financial and vocational dimensions."
    ),
    "total_amount": 2500000.00,
}

PROGRAMS = [
    {
        "name": "Care & Coaching for Pastors, Church Leaders, and Spouses",
        "description": (
            "Our coaches have experienced the joys and difficulties of ministry and will "
            "help you make progress and gain perspective on the personal and relational "
            "challenges you face serving and leading others."
        ),
        "questions": [
            ("What is your full name?", "TEXT", []),
            ("What is the name of your church and your current role?", "TEXT", []),
            ("How many years have you been in ministry?", "MULTIPLE_CHOICE", YEARS_OPTIONS),
            ("What is your biggest leadership challenge right now?", "TEXT", []),
            ("What are your top 2-3 goals for this coaching program?", "TEXT", []),
            ("Do you have any scheduling constraints or preferred session times?", "TEXT", []),
        ],
        "milestones": [
            ("First Coaching Session Completed",
             "Mark as complete when the beneficiary has completed the first session.", 150.00,
             "How was your first coaching session? Did it meet your expectations?"),
            ("Second Coaching Session Completed",
             "Mark as complete when the beneficiary has completed the second session.", 150.00,
             "How was your second coaching session? Are you making the progress you hoped to make?"),
            ("Third Coaching Session Completed",
             "Mark as complete when the beneficiary has completed the third session.", 150.00,
             "How was your third coaching session? Do you feel like you need more sessions "
             "or do you feel confident on your own?"),
        ],
    },
    {
        "name": "Strengthening Our Souls",
        "description": (
            "A self-paced journey through frameworks and practices that provide the "
            "foundation for leading your life and ministry from a grounded, peace-filled "
            "place despite surrounding circumstances."
        ),
        "questions": [
            ("What is your full name?", "TEXT", []),
            ("What is the name of your church or organization and your role?", "TEXT", []),
            ("What drew you to this program? What do you hope to gain from it?", "TEXT", []),
            ("How would you describe your current level of soul health (peace, rest, and "
             "spiritual well-being)?", "MULTIPLE_CHOICE", [
                 "Thriving - I feel deeply connected and at peace",
                 "Stable - I have a good rhythm, but there is room to grow",
                 "Struggling - I feel drained and need renewal",
                 "Uncertain - I'm not sure how to gauge my soul health",
             ]),
            ("What are the biggest challenges that make it difficult for you to lead from "
             "a place of peace and grounding?", "TEXT", []),
        ],
        "milestones": [
            ("Onboard into Strengthening Our Souls", "Sign up for a soul care account.", 25.00,
             "What motivated you to sign up for this soul care journey? What do you hope "
             "to gain from this experience?"),
            ("Complete: Soul Drives Everything", "Complete this within the course.", 25.00,
             "Reflect on how your inner well-being influences your daily life."),
            ("Complete: Soul & Speed", "Complete this within the course.", 25.00,
             "How does the pace of your life affect your soul?"),
            ("Complete: Power of Relationships", "Complete this within the course.", 25.00,
             "Think about a meaningful relationship in your life. How does it nourish your soul?"),
            ("Complete: Returning to Joy", "Complete this within the course.", 25.00,
             "What does joy mean to you? Reflect on a recent moment of joy."),
            ("Complete: Restoring Life", "Complete this within the course.", 25.00,
             "Consider an area of your life that needs restoration. What small steps can you take?"),
            ("Complete: Rest is a Weapon", "Complete this within the course.", 25.00,
             "How does true rest empower you? What barriers keep you from prioritizing rest?"),
            ("Day Retreat and Soul Care Plan", "", 25.00,
             "Looking back on this experience, what key insights have you gained?"),
        ],
    },
    {
        "name": "Ministry Couples Retreat",
        "description": (
            "A 3-day/2-night retreat of personal renewal and encouragement for pastoral "
            "couples in full-time ministry, a time to freely receive good things for "
            "their marriage, family, and ministry."
        ),
        "questions": [
            ("What are your full names (Pastor & Spouse)?", "TEXT", []),
            ("What is the name of your church and your role?", "TEXT", []),
            ("How many years have you been married?", "MULTIPLE_CHOICE", YEARS_OPTIONS),
            ("What is one area of your marriage you hope to strengthen during this retreat?", "TEXT", []),
            ("Have you attended a marriage retreat before? If so, what was your experience?", "TEXT", []),
            ("Do you have any dietary restrictions or special accommodations we should be aware of?",
             "TEXT", []),
        ],
        "milestones": [
            ("Send Retreat Details",
             "Send details to this applicant after approving their scholarship.", 0.00, None),
            ("Attend Retreat",
             "Travel to the location of the retreat and have a great time!", 900.00,
             "How did the retreat impact your marriage? What surprised you? "
             "What was your biggest takeaway?"),
        ],
    },
]

PRE_SURVEY = {
    "title": "Flourishing Pulse",
    "description": "A short check-in on how you are flourishing before the program begins.",
    "questions": [
        ("Overall, how satisfied are you with life as a whole these days?", "LIKERT",
         _scale("Not Satisfied at All", "Completely Satisfied")),
        ("In general, how happy or unhappy do you usually feel?", "LIKERT",
         _scale("Extremely Unhappy", "Extremely Happy")),
        ("In general, how would you rate your physical health?", "LIKERT",
         _scale("Poor", "Excellent")),
        ("How would you rate your overall mental health?", "LIKERT",
         _scale("Poor", "Excellent")),
        ("Overall, to what extent do you feel the things you do in your life are worthwhile?",
         "LIKERT", _scale("Not at All Worthwhile", "Completely Worthwhile")),
        ("I understand my purpose in life.", "LIKERT",
         _scale("Strongly Disagree", "Strongly Agree")),
        ("I always act to promote good in all circumstances, even in difficult and "
         "challenging situations.", "LIKERT", _scale("Not True of Me", "Completely True of Me")),
        ("I am always able to give up some happiness now for greater happiness later.",
         "LIKERT", _scale("Not True of Me", "Completely True of Me")),
        ("I am content with my friendships and relationships.", "LIKERT",
         _scale("Strongly Disagree", "Strongly Agree")),
        ("My relationships are as satisfying as I would want them to be.", "LIKERT",
         _scale("Strongly Disagree", "Strongly Agree")),
        ("How often do you worry about being able to meet normal monthly living expenses?",
         "LIKERT", _scale("Worry All of the Time", "Do Not Ever Worry")),
        ("How often do you worry about safety, food, or housing?", "LIKERT",
         _scale("Worry All of the Time", "Do Not Ever Worry")),
        ("Which area(s) of your flourishing do you hope this experience will help you grow in?",
         "CHECKBOX", [
             "Happiness and Life Satisfaction",
             "Mental and Physical Health",
             "Meaning and Purpose",
             "Character and Virtue",
             "Close Social Relationships",
             "Financial and Material Stability",
         ]),
        ("How do you hope to grow from this experience? Please share your aspirations "
         "or expectations.", "TEXT", []),
    ],
}

POST_SURVEY = {
    "title": "Harvard Flourishing Index - Post Survey",
    "description": "How much the experience contributed to each area of flourishing.",
    "questions": [
        (text, "MULTIPLE_CHOICE", CONTRIBUTION_OPTIONS)
        for text in [
            "How much has this experience contributed to improvements in your overall "
            "satisfaction with life?",
            "How much has this experience contributed to you feeling happier in general?",
            "How much has this experience contributed to improvements in your physical health?",
            "How much has this experience contributed to improvements in your mental health?",
            "How much has this experience contributed to you finding more worth in the things you do?",
            "How much has this experience contributed to your understanding of your life's purpose?",
            "How much has this experience helped you act to promote good, even in challenging situations?",
            "How much has this experience helped you prioritize long-term happiness over "
            "short-term happiness?",
            "How much has this experience contributed to your contentment with your "
            "friendships and relationships?",
            "How much has this experience contributed to the satisfaction you feel in your relationships?",
            "How much has this experience helped reduce your worry about meeting monthly living expenses?",
            "How much has this experience helped reduce your worry about safety, food, or housing?",
        ]
    ] + [
        ("What private message would you like to share with the organizer of this experience "
         "about how it helped you grow?", "TEXT", []),
    ],
}

# Children before parents, so foreign keys never dangle mid-delete
CLEAR_ORDER = [
    QuestionResponseDB, SurveyResponseDB, MilestoneReflectionDB, ReviewDB, RatingDB,
    ApplicationDB, QuestionDB, SessionDB, MilestoneDB, SurveyDB, ProgramDB, FundDB, UserDB,
]


def clear_data(db):
    """Delete every row the seed owns, plus generated participation rows."""
    for program in db.query(ProgramDB).all():
        program.funds = []
        program.surveys = []
    db.flush()
    for model in CLEAR_ORDER:
        deleted = db.query(model).delete()
        if deleted:
            logger.info("  Cleared %d rows from %s", deleted, model.__tablename__)
    db.commit()


def create_program(db, data, funds, context="APPLICATION") -> ProgramDB:
    """Create a program with its application questions and milestones."""
    program = ProgramDB(name=data["name"], description=data["description"], funds=list(funds))
    db.add(program)
    db.flush()

    for order, (text, qtype, options) in enumerate(data["questions"], start=1):
        db.add(QuestionDB(
            text=text, type=qtype, options=options, required=True,
            order=order, context=context, program_id=program.id,
        ))

    for order, (title, description, payment, prompt) in enumerate(data["milestones"], start=1):
        db.add(MilestoneDB(
            program_id=program.id, order=order, title=title, description=description,
            payment_amount=payment, reflection_prompt=prompt,
        ))

    logger.info("Created program: %s (ID: %s)", program.name, program.id)
    return program


def create_survey(db, data, survey_type, programs) -> SurveyDB:
    """Create a survey shared by programs."""
    survey = SurveyDB(
        title=data["title"], description=data["description"],
        type=survey_type, programs=list(programs),
    )
    db.add(survey)
    db.flush()

    for order, (text, qtype, options) in enumerate(data["questions"], start=1):
        db.add(QuestionDB(
            text=text, type=qtype, options=options, required=True,
            order=order, context="SURVEY", survey_id=survey.id,
        ))

    logger.info("Created %d questions for %s survey", len(data["questions"]), survey.title)
    return survey


def seed(db, reset: bool = True) -> dict:
    """
    Populate the demo catalog.

    Args:
        db: Database session
        reset: Clear existing rows first

    Returns:
        Ids of the created fund, programs and surveys
    """
    logger.info("Starting database seeding with programs and surveys...")
    if reset:
        logger.info("Clearing existing data...")
        clear_data(db)

    fund = FundDB(**FUND)
    db.add(fund)
    db.flush()
    logger.info("Created fund: %s", fund.name)

    programs = [create_program(db, data, [fund]) for data in PROGRAMS]
    pre = create_survey(db, PRE_SURVEY, "PRE", programs)
    post = create_survey(db, POST_SURVEY, "POST", programs)
    db.commit()

    logger.info("Seeding complete")
    return {
        "fund_id": fund.id,
        "program_ids": [p.id for p in programs],
        "pre_survey_id": pre.id,
        "post_survey_id": post.id,
    }


def main():
    """Run the seed against the configured database."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    engine = make_engine()
    init_db(engine)
    db = make_session_factory(engine)()
    try:
        result = seed(db)
        print(f"Seeded fund {result['fund_id']} with programs {result['program_ids']}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
