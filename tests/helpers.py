def ids(session, stmt):
    """Primary keys returned by `stmt`, in result order."""
    return [row.id for row in session.execute(stmt).scalars()]


def id_set(session, stmt):
    return set(ids(session, stmt))
