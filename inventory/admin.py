from django.contrib import admin
from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'business', 'price', 'stock', 'has_embedding', 'created_at']
    list_filter = ['business']
    search_fields = ['name', 'description', 'business__name']
    readonly_fields = ['id', 'created_at', 'updated_at']
    ordering = ['-created_at']

    @admin.display(boolean=True, description='Embedded')
    def has_embedding(self, obj):
        return obj.has_embedding
