from datetime import date

from capacity_planner.repositories.assignment_repo import AssignmentRepository


def ids(assignments):
    return {a.assignment_id for a in assignments}


class TestOverlapping:
    def test_returns_only_intersecting_assignments(self, db_session, make_engineer, make_project, make_assignment):
        engineer = make_engineer()
        project = make_project()
        before = make_assignment(engineer, project, 20, date(2025, 1, 1), date(2025, 1, 31))
        touching_start = make_assignment(engineer, project, 20, date(2025, 2, 1), date(2025, 3, 1))
        inside = make_assignment(engineer, project, 20, date(2025, 3, 5), date(2025, 3, 6))
        touching_end = make_assignment(engineer, project, 20, date(2025, 3, 31), date(2025, 4, 30))
        after = make_assignment(engineer, project, 20, date(2025, 5, 1), date(2025, 5, 31))

        result = AssignmentRepository(db_session).overlapping(
            engineer.engineer_id, date(2025, 3, 1), date(2025, 3, 31)
        )

        assert ids(result) == {
            touching_start.assignment_id,
            inside.assignment_id,
            touching_end.assignment_id,
        }
        assert before.assignment_id not in ids(result)
        assert after.assignment_id not in ids(result)

    def test_covering_assignment_is_included(self, db_session, make_engineer, make_project, make_assignment):
        engineer = make_engineer()
        project = make_project()
        covering = make_assignment(engineer, project, 50, date(2025, 1, 1), date(2025, 12, 31))

        result = AssignmentRepository(db_session).overlapping(
            engineer.engineer_id, date(2025, 6, 10), date(2025, 6, 12)
        )

        assert ids(result) == {covering.assignment_id}

    def test_other_engineers_are_ignored(self, db_session, make_engineer, make_project, make_assignment):
        ada = make_engineer("Ada")
        grace = make_engineer("Grace")
        project = make_project()
        make_assignment(grace, project, 80, date(2025, 3, 1), date(2025, 3, 31))

        result = AssignmentRepository(db_session).overlapping(
            ada.engineer_id, date(2025, 3, 1), date(2025, 3, 31)
        )

        assert result == []

    def test_excluded_assignment_is_left_out(self, db_session, make_engineer, make_project, make_assignment):
        engineer = make_engineer()
        project = make_project()
        edited = make_assignment(engineer, project, 60, date(2025, 3, 1), date(2025, 3, 10))
        other = make_assignment(engineer, project, 30, date(2025, 3, 5), date(2025, 3, 15))

        result = AssignmentRepository(db_session).overlapping(
            engineer.engineer_id,
            date(2025, 3, 1),
            date(2025, 3, 31),
            exclude_assignment_id=edited.assignment_id,
        )

        assert ids(result) == {other.assignment_id}


class TestListAssignments:
    def test_filters_and_sorts_by_start_date(self, db_session, make_engineer, make_project, make_assignment):
        engineer = make_engineer()
        atlas = make_project("Atlas")
        zephyr = make_project("Zephyr")
        late = make_assignment(engineer, atlas, 10, date(2025, 6, 1), date(2025, 6, 30))
        early = make_assignment(engineer, atlas, 10, date(2025, 2, 1), date(2025, 2, 28))
        make_assignment(engineer, zephyr, 10, date(2025, 4, 1), date(2025, 4, 30))

        repo = AssignmentRepository(db_session)

        by_project = repo.list_assignments(project_id=atlas.project_id)
        assert [a.assignment_id for a in by_project] == [early.assignment_id, late.assignment_id]

        in_window = repo.list_assignments(start_date=date(2025, 2, 15), end_date=date(2025, 4, 1))
        assert len(in_window) == 2
        assert late.assignment_id not in ids(in_window)
