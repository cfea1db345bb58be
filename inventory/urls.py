from django.urls import path
from . import views

urlpatterns = [
    path('', views.ProductListCreateView.as_view(), name='product-list-create'),
    path('search/', views.product_search, name='product-search'),
    path('featured/', views.featured_products, name='product-featured'),
    path('categories/', views.product_categories, name='product-categories'),
    path('<int:pk>/', views.ProductDetailView.as_view(), name='product-detail'),
    path('<int:pk>/stock/', views.update_product_stock, name='product-stock'),
    path('<int:pk>/rate/', views.rate_product, name='product-rate'),
    path('<int:pk>/images/', views.upload_product_images, name='product-images'),
]
