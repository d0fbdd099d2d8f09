from django.http import JsonResponse
import django
import rest_framework


def health_check(request):
    """Lightweight liveness probe with framework versions"""
    return JsonResponse({
        'status': 'ok',
        'django_version': django.get_version(),
        'drf_version': rest_framework.__version__,
    })
