from django.urls import path

from server.apps.files import views

app_name = 'files'

urlpatterns = [
    path('files/', views.file_list, name='list'),
    path('files/upload/', views.upload, name='upload'),
    path('files/download/<int:file_id>/', views.download, name='download'),
    path('files/share/<int:file_id>/', views.share, name='share'),
    path('files/<int:file_id>/', views.delete, name='delete'),
    path(
        'public/download/<str:public_key>/',
        views.public_download,
        name='public-download',
    ),
]
