"""
Newsroom workflow API URLs, mounted at /api/newsroom/.
"""

from django.urls import path, include
from config.routers import SafeDefaultRouter
from .views import StoryViewSet, TranslationViewSet

app_name = 'newsroom'

router = SafeDefaultRouter()
router.register(r'stories', StoryViewSet, basename='story')
router.register(r'translations', TranslationViewSet, basename='translation')

urlpatterns = [
    path('', include(router.urls)),
]
