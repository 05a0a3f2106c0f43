from visitlog.services.student_matching import StudentResolver, fuzzy_pattern


def test_exact_student_no_match(students):
    enrolled = students.add(studentNo='S25-01')
    resolver = StudentResolver(students)

    assert resolver.resolve({'studentNo': 'S25-01'})['_id'] == enrolled['_id']
    assert students.lookups == [('S25-01', False)]


def test_doubled_student_no_matches_after_collapse(students):
    enrolled = students.add(studentNo='S25-01')
    resolver = StudentResolver(students)

    assert resolver.resolve({'studentNo': 'S2255--0011'})['_id'] == enrolled['_id']


def test_punctuation_noise_matches_via_fuzzy_pattern(students):
    enrolled = students.add(studentNo='S25-281101')
    resolver = StudentResolver(students)

    student = resolver.resolve({'studentNo': 'S25-2811.01'})

    assert student['_id'] == enrolled['_id']
    assert students.lookups[-1][1] is True


def test_short_code_never_uses_fuzzy_pattern(students):
    students.add(studentNo='S10-0101')
    resolver = StudentResolver(students)

    assert resolver.resolve({'studentNo': 'S1'}) is None
    assert resolver.resolve({'raw': 'S-1-0'}) is None
    assert all(fuzzy is False for _, fuzzy in students.lookups)


def test_fuzzy_pattern_bounds():
    assert fuzzy_pattern('S25', min_length=4, max_length=32) is None
    assert fuzzy_pattern('abcdefghij', min_length=4, max_length=5) is None
    assert fuzzy_pattern('S2501', min_length=4, max_length=32) == r'S+\W*2+\W*5+\W*0+\W*1+'


def test_fuzzy_pattern_ignores_punctuation():
    assert fuzzy_pattern('a.b+c*d', min_length=4, max_length=32) == r'a+\W*b+\W*c+\W*d+'


def test_id_lookup_takes_precedence(students):
    by_id = students.add(studentNo='S25-01')
    students.add(studentNo='S25-02')
    resolver = StudentResolver(students)

    assert resolver.resolve({'id': by_id['_id'], 'studentNo': 'S25-02'})['_id'] == by_id['_id']


def test_malformed_id_falls_back_to_student_no(students):
    enrolled = students.add(studentNo='S25-02')
    resolver = StudentResolver(students)

    assert resolver.resolve({'id': 'not-an-object-id', 'studentNo': 'S25-02'})['_id'] == enrolled['_id']


def test_raw_payload_goes_through_cascade(students):
    enrolled = students.add(studentNo='S25-03')
    resolver = StudentResolver(students)

    assert resolver.resolve({'raw': 'SS2255--0033'})['_id'] == enrolled['_id']


def test_unknown_student_returns_none(students):
    students.add(studentNo='S25-01')
    resolver = StudentResolver(students)

    assert resolver.resolve({'studentNo': 'X99-9999'}) is None
    assert resolver.resolve({}) is None
