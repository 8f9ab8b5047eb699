"""
Shared pytest fixtures for the newsroom project.

Provides staff users for each role, the lookups a story needs before
approval, and a story factory.
"""

import pytest
from django.contrib.auth import get_user_model

from apps.core.models import StaffProfile
from apps.core.permissions import StaffRole, get_staff_role
from apps.newsroom.models import Category, Classification, Story, Tag
from apps.newsroom.state_machine import ClassificationType, StoryStage
from apps.newsroom.workflow import Actor

User = get_user_model()


# ============================================================================
# Users
# ============================================================================

@pytest.fixture
def make_user(db):
    """Factory for staff users with a given role."""
    counter = {'n': 0}

    def _make(role=StaffRole.INTERN, username=None):
        counter['n'] += 1
        user = User.objects.create_user(
            username=username or f"{role.lower()}{counter['n']}",
            password='newsroom-pass-123',
            first_name=role.label,
        )
        StaffProfile.objects.filter(user=user).update(role=role)
        return user

    return _make


@pytest.fixture
def intern(make_user):
    return make_user(StaffRole.INTERN, 'intern')


@pytest.fixture
def journalist(make_user):
    return make_user(StaffRole.JOURNALIST, 'journalist')


@pytest.fixture
def sub_editor(make_user):
    return make_user(StaffRole.SUB_EDITOR, 'subeditor')


@pytest.fixture
def editor(make_user):
    return make_user(StaffRole.EDITOR, 'editor')


@pytest.fixture
def as_actor():
    """Build the workflow Actor for a user."""
    def _actor(user):
        return Actor.from_user(user)
    return _actor


# ============================================================================
# Lookups
# ============================================================================

@pytest.fixture
def category(db):
    return Category.objects.create(name='Community', slug='community')


@pytest.fixture
def tag(db):
    return Tag.objects.create(name='Water', slug='water')


@pytest.fixture
def english(db):
    return Classification.objects.create(
        name='English', slug='language-english', type=ClassificationType.LANGUAGE
    )


@pytest.fixture
def christian(db):
    return Classification.objects.create(
        name='Christian', slug='religion-christian', type=ClassificationType.RELIGION
    )


# ============================================================================
# Stories
# ============================================================================

@pytest.fixture
def make_story(db, category, english, christian):
    """
    Factory for stories at a given stage.

    By default the story has a category and one LANGUAGE and one RELIGION
    classification, so it satisfies the approval preconditions.
    """
    def _make(author, stage=StoryStage.DRAFT, author_role=None, classified=True,
              with_category=True, title='Council approves new water plan', **kwargs):
        story = Story(
            title=title,
            content='The municipal council voted on Tuesday.',
            author=author,
            author_role=author_role or get_staff_role(author),
            category=category if with_category else None,
            **kwargs
        )
        story.set_stage(stage)
        story.save()
        if classified:
            story.classifications.set([english, christian])
        return story

    return _make
