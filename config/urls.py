"""
URL configuration for the newsroom project.
"""

from django.contrib import admin
from django.urls import path, include

from apps.core.urls import auth_urlpatterns

urlpatterns = [
    path('admin/', admin.site.urls),
    # JWT auth endpoints
    path('api/auth/', include((auth_urlpatterns, 'auth'))),
    # Editorial workflow API
    path('api/newsroom/', include('apps.newsroom.urls')),
    # Observability endpoints
    path('', include('apps.core.urls')),
]

# Customize admin site
admin.site.site_header = "Newsroom Administration"
admin.site.site_title = "Newsroom Admin Portal"
admin.site.index_title = "Editorial workflow administration"
